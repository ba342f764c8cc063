"""Tests for repokit/domain/repositories/base.py and unit_of_work.py."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from repokit.domain.models import ValidationResult
from repokit.domain.repositories import GenericRepository, Repository, UnitOfWork


def test_repository_cannot_be_instantiated_directly():
    with pytest.raises(TypeError):
        Repository()  # type: ignore[abstract]


def test_repository_concrete_subclass_must_implement_all_methods():
    class _Partial(Repository):
        async def count(self, predicate=None): return 0
        # missing everything else

    with pytest.raises(TypeError):
        _Partial()  # type: ignore[abstract]


def test_generic_repository_is_a_repository_and_unit_of_work():
    repo = GenericRepository(MagicMock(), object)
    assert isinstance(repo, Repository)
    assert isinstance(repo, UnitOfWork)


# --- unit of work ---

async def test_commit_delegates_to_session():
    session = MagicMock(commit_all=AsyncMock())
    await UnitOfWork(session).commit()
    session.commit_all.assert_awaited_once()


async def test_commit_propagates_session_errors_unchanged():
    error = RuntimeError("deadlock")
    session = MagicMock(commit_all=AsyncMock(side_effect=error))
    with pytest.raises(RuntimeError) as excinfo:
        await UnitOfWork(session).commit()
    assert excinfo.value is error


def test_validate_model_without_validator_accepts():
    assert UnitOfWork(MagicMock()).validate_model(object()) is True


def test_validate_model_with_validator_delegates():
    validator = MagicMock()
    validator.validate.return_value = ValidationResult.invalid(["bad"])
    assert UnitOfWork(MagicMock(), validator).validate_model(object()) is False


def test_validate_model_rejects_missing_entity():
    assert UnitOfWork(MagicMock()).validate_model(None) is False
