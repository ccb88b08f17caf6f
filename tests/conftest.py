"""Shared test fixtures for prattention."""

from __future__ import annotations

from pathlib import Path

import pytest

from prattention.cache import TTLCache
from prattention.ownership.resolver import OwnershipResolver
from prattention.sources import DirectoryFetcher, SourceFiles, SourceRef
from prattention.turns.store import MemoryStore
from prattention.turns.tracker import AttentionTracker

CODEOWNERS = '''# Code owners of the sample repository.

@@@FallbackOwners @"Release Captain"
@@@Backend @"Jane Doe" @"John Roe" @@Infra
@@@Infra @"Ops Person"
@@@Docs @"Doc Writer"

* @"Jane Doe"
/services/ @@Backend
/deploy/** @@Infra
*.md @@Docs
!/services/generated/
'''

HIGH_RISK = '''services/payments/
deploy/prod
'''


@pytest.fixture
def tmp_repo(tmp_path: Path) -> Path:
    """Create a temporary repository with CODEOWNERS and highrisk.txt files."""
    (tmp_path / "CODEOWNERS").write_text(CODEOWNERS)
    (tmp_path / "highrisk.txt").write_text(HIGH_RISK)

    services = tmp_path / "services" / "payments"
    services.mkdir(parents=True)
    (services / "charge.py").write_text("def charge():\n    pass\n")
    (tmp_path / "README.md").write_text("# Sample\n")
    return tmp_path


@pytest.fixture
def source_ref() -> SourceRef:
    return SourceRef(workspace="workspace", repo="repo", branch="main", commit="abc123")


@pytest.fixture
def resolver(tmp_repo: Path) -> OwnershipResolver:
    return OwnershipResolver(SourceFiles(DirectoryFetcher(tmp_repo), TTLCache()))


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def tracker(store: MemoryStore) -> AttentionTracker:
    return AttentionTracker(store)
