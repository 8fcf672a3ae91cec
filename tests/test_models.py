"""Model metadata: clean import and the storage-level uniqueness guarantees."""

import os
import subprocess
import sys
from pathlib import Path

from sqlalchemy import UniqueConstraint

from taskearn.core.database_core import Base

REPO_ROOT = Path(__file__).resolve().parents[1]

IMPORT_STRICT = (
    "import warnings\n"
    "from sqlalchemy.exc import SADeprecationWarning\n"
    "warnings.simplefilter('error', SADeprecationWarning)\n"
    "import taskearn.models\n"
)


def unique_column_sets(table_name):
    table = Base.metadata.tables[table_name]
    return {
        tuple(sorted(column.name for column in constraint.columns))
        for constraint in table.constraints
        if isinstance(constraint, UniqueConstraint)
    }


def test_models_import_without_sqlalchemy_deprecations():
    result = subprocess.run(
        [sys.executable, "-c", IMPORT_STRICT],
        cwd=REPO_ROOT,
        env=dict(os.environ),
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == 0, result.stderr


def test_one_completion_per_user_task_day():
    assert ("completion_date", "task_id", "user_id") in unique_column_sets("task_completions")


def test_one_referral_per_referred_user():
    assert ("referred_id",) in unique_column_sets("referrals")
