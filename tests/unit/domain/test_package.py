"""Tests for package-level exports."""

import repokit
from repokit.domain.models import __all__ as models_all


def test_domain_models_exports_11_names():
    assert len(models_all) == 11


def test_generic_repository_importable_from_package():
    assert repokit.GenericRepository.__name__ == "GenericRepository"


def test_resolvers_importable_from_package():
    assert issubclass(repokit.DatabaseWinsResolver, repokit.ConflictResolver)


def test_package_all_names_resolve():
    missing = [name for name in repokit.__all__ if not hasattr(repokit, name)]
    assert missing == []
