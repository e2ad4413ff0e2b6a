"""
Artifact fetcher module for the artifact mirror.

Transfers the content of one tag into a local directory using the external
`oras` command line tool.
"""

import logging
import subprocess
import threading
from abc import ABC, abstractmethod

from .config import Repository
from .errors import PullError

logger = logging.getLogger(__name__)

# Seconds to wait for the output reader after the tool has exited
_READER_JOIN_TIMEOUT = 5


def _stream_output(stream) -> None:
    for line in stream:
        line = line.rstrip()
        if line:
            logger.debug(f"[oras] {line}")


def artifact_reference(registry_host: str, repository: Repository, tag_name: str) -> str:
    """
    Fully qualified reference of a tag.

    Example:
        >>> artifact_reference("quay.io", Repository.from_name("org/repo"), "v1")
        'quay.io/org/repo:v1'
    """
    return f"{registry_host}/{repository.name}:{tag_name}"


class ArtifactFetcher(ABC):
    """Capability to pull one artifact reference into a directory."""

    @abstractmethod
    def pull(self, reference: str, destination: str) -> None:
        """
        Pull reference into destination, which must already exist.

        Raises:
            PullError: if the transfer failed
        """


class OrasFetcher(ArtifactFetcher):
    """Pull artifacts with `oras pull <reference> --output <destination>`."""

    def __init__(self, binary: str = "oras", timeout: int = 600):
        self.binary = binary
        self.timeout = timeout

    def command(self, reference: str, destination: str) -> list:
        return [self.binary, "pull", reference, "--output", str(destination)]

    def pull(self, reference: str, destination: str) -> None:
        """
        Run the pull tool.

        Behavior:
            - In DEBUG mode: streams tool output line-by-line to logs
            - In normal mode: captures output, included in the error on failure
            - Respects the configured timeout; a timeout is a retryable failure
        """
        cmd = self.command(reference, destination)
        logger.info(f"Pulling {reference} into {destination}")
        logger.debug(f"Running command: {' '.join(cmd)}")

        is_debug = logger.getEffectiveLevel() == logging.DEBUG

        try:
            if is_debug:
                process = subprocess.Popen(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    errors="replace",
                    bufsize=1,
                )
                reader = threading.Thread(
                    target=_stream_output, args=(process.stdout,), name="oras-output", daemon=True
                )
                reader.start()
                try:
                    return_code = process.wait(timeout=self.timeout)
                except subprocess.TimeoutExpired:
                    process.kill()
                    process.wait()
                    raise
                finally:
                    reader.join(timeout=_READER_JOIN_TIMEOUT)
                if return_code != 0:
                    raise PullError(f"Pull of {reference} failed with exit code {return_code}")
            else:
                subprocess.run(
                    cmd,
                    check=True,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    timeout=self.timeout,
                )
        except subprocess.TimeoutExpired:
            raise PullError(f"Pull of {reference} timed out after {self.timeout}s", retryable=True)
        except subprocess.CalledProcessError as e:
            error_msg = (e.stderr or b"").decode(errors="replace").strip()
            raise PullError(
                f"Pull of {reference} failed with exit code {e.returncode}: {error_msg}"
            )
        except OSError as e:
            raise PullError(f"Cannot run {self.binary}: {e}")

        logger.info(f"Pull complete: {reference}")
