"""Ledger unit-test fixtures."""

import pytest
from ledger_fakes import FakeSession, InMemoryLedgerRepository, RecordingIndexer

from src.hl_ledger.application.service import LedgerApplicationService


@pytest.fixture
def repo() -> InMemoryLedgerRepository:
    return InMemoryLedgerRepository()


@pytest.fixture
def db(repo: InMemoryLedgerRepository) -> FakeSession:
    return FakeSession(repo)


@pytest.fixture
def indexer() -> RecordingIndexer:
    return RecordingIndexer()


@pytest.fixture
def service(
    repo: InMemoryLedgerRepository, indexer: RecordingIndexer
) -> LedgerApplicationService:
    return LedgerApplicationService(repo=repo, indexer=indexer, currency="USD", max_retries=2)
