"""Shared test fixtures for the artifact mirror."""

import os

import pytest

from mirror.catalog import Tag
from mirror.config import Config, Repository
from mirror.errors import CatalogError, PullError
from mirror.fetcher import ArtifactFetcher
from mirror.reconciler import Reconciler
from mirror.validation import parse_timestamp

T1 = "Mon, 02 Jan 2006 15:04:05 -0700"
T2 = "Tue, 03 Jan 2006 15:04:05 -0700"
T0 = "Sun, 01 Jan 2006 15:04:05 -0700"


def make_tag(name: str, raw: str) -> Tag:
    return Tag(name=name, last_modified=parse_timestamp(raw), raw_last_modified=raw)


class FakeCatalog:
    """Catalog returning canned tags per repository name."""

    def __init__(self, tags=None):
        self.tags = tags or {}
        self.calls = []

    def fetch_tags(self, repository):
        self.calls.append(repository.name)
        result = self.tags.get(repository.name)
        if isinstance(result, Exception):
            raise result
        if not result:
            raise CatalogError(f"Repository {repository.name} has no tags")
        return list(result)


class RecordingFetcher(ArtifactFetcher):
    """Fetcher that records calls and writes a file into the destination."""

    def __init__(self, fail_on=()):
        self.calls = []
        self.fail_on = set(fail_on)

    def pull(self, reference, destination):
        self.calls.append((reference, destination))
        assert os.path.isdir(destination)
        with open(os.path.join(destination, "report.txt"), "w") as f:
            f.write(reference)
        if reference in self.fail_on:
            raise PullError(f"Pull of {reference} failed with exit code 1")


@pytest.fixture
def store_root(tmp_path):
    root = tmp_path / "files"
    root.mkdir()
    return root


@pytest.fixture
def repository():
    return Repository.from_name("org/repo")


@pytest.fixture
def config(store_root, repository):
    return Config(
        REPOSITORIES=(repository, Repository.from_name("org/other")),
        PORT=8080,
        FILES_DIR=str(store_root),
    )


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def fetcher():
    return RecordingFetcher()


@pytest.fixture
def reconciler(config, catalog, fetcher):
    return Reconciler(config, catalog=catalog, fetcher=fetcher)
