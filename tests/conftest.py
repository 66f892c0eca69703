"""
Shared fixtures for the Ablesense test suite.
"""

import sys
import warnings
from pathlib import Path

import pytest

# Filter deprecation warnings from pytest-asyncio; we cannot fix the library.
warnings.filterwarnings(
    "ignore",
    category=DeprecationWarning,
    module="pytest_asyncio",
)

# Ensure the src/ directory is on the import path so that
# ablesense.core.config / ablesense.core.engine / etc. can be imported.
SRC_ROOT = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_ROOT))

from ablesense.core.config import AblesenseConfig  # noqa: E402


# =============================================================================
# Fixtures: sample Able source
# =============================================================================

@pytest.fixture
def able_source() -> str:
    """Module with a class, a method, a top-level function and two bindings."""
    return (
        "## Sample module\n"
        "   used across the tests ##\n"
        "class User:\n"
        "    fun name(this):\n"
        "        return this.first  # inline comment\n"
        "\n"
        "fun greet():\n"
        "    pr(\"hello # not a comment\")\n"
        "\n"
        "user = User()\n"
        "config = {\n"
        "    host: \"localhost\",\n"
        "    \"port\": 8080,\n"
        "}\n"
    )


@pytest.fixture
def config() -> AblesenseConfig:
    """Config that ignores the host's ABLEPATH."""
    return AblesenseConfig(use_env_path=False)


def _write(path: Path, text: str = "") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def tmp_workspace(tmp_path: Path, able_source: str) -> Path:
    """
    A workspace with a root module, a package, a ``lib/`` directory and
    a few files that must never be indexed.
    """
    root = tmp_path / "workspace"
    _write(root / "app.abl", able_source)
    _write(root / "mapper" / "__init__.abl", "fun build():\n    return 1\n")
    _write(root / "mapper" / "utils.abl", "fun map_all(items):\n    return items\nlimit = 10\n")
    _write(root / "lib" / "helpers.abl", "class Helper:\n    fun run(this):\n        pass\n")

    # Never indexed
    _write(root / "notes.txt", "fun ignored():\n")
    _write(root / ".hidden" / "secret.abl", "fun secret():\n")
    _write(root / "node_modules" / "dep.abl", "fun dep():\n")
    _write(root / "build" / "out.abl", "fun generated():\n")
    return root
