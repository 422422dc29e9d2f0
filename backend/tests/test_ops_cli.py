"""
Tests for the ops CLI: create-schema on a file DB, verify/finalize failure exit codes.
"""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

# Repo root (parent of backend)
_repo_root = Path(__file__).resolve().parent.parent.parent
_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))


def _run_ops(db_path: Path, *args: str) -> tuple[int, str, str]:
    """Run tools/ops.py; return (returncode, stdout, stderr)."""
    env = {
        **os.environ,
        "DATABASE_URL": f"sqlite+aiosqlite:///{db_path}",
        "LEDGER_BASE_URL": "",
        "LEDGER_CONTRACT_ADDRESS": "",
    }
    result = subprocess.run(
        [sys.executable, str(_repo_root / "tools" / "ops.py"), *args],
        cwd=str(_repo_root),
        capture_output=True,
        text=True,
        timeout=60,
        env=env,
    )
    return result.returncode, result.stdout or "", result.stderr or ""


def test_create_schema_then_verify_unknown_season(tmp_path: Path) -> None:
    db = tmp_path / "ops.db"
    code, out, err = _run_ops(db, "create-schema")
    assert code == 0, err
    assert "schema ok" in out
    assert db.is_file()

    code, out, _ = _run_ops(db, "verify", "--season", "3")
    assert code == 1
    assert "3,FAIL" in out


def test_finalize_without_ledger_fails(tmp_path: Path) -> None:
    code, _, err = _run_ops(tmp_path / "ops.db", "finalize", "--season", "2")
    assert code == 1
    assert "LedgerNotConfiguredError" in err


def test_cleanup_with_explicit_current_season(tmp_path: Path) -> None:
    code, out, err = _run_ops(tmp_path / "ops.db", "cleanup", "--keep", "2", "--current-season", "10")
    assert code == 0, err
    assert out.strip() == "8,0,0"
