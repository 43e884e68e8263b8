"""Root conftest.py for test configuration.

Ensures local src/ directory takes priority over any installed packages and
makes the shared fakes importable from every test directory.
"""

import sys
from pathlib import Path

import pytest

# Insert local src directory at the beginning of sys.path
_src_dir = Path(__file__).parent.parent / "src"
if str(_src_dir) not in sys.path:
    sys.path.insert(0, str(_src_dir))

_tests_dir = Path(__file__).parent
if str(_tests_dir) not in sys.path:
    sys.path.insert(0, str(_tests_dir))

# Force reimport of umple_lsp modules if already imported
for module_name in list(sys.modules.keys()):
    if module_name.startswith("umple_lsp"):
        del sys.modules[module_name]


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep user config and legacy variables out of every test."""
    for name in (
        "UMPLESYNC_JAR_PATH",
        "UMPLESYNC_HOST",
        "UMPLESYNC_PORT",
        "UMPLESYNC_TIMEOUT_MS",
        "UMPLE_TREE_SITTER_LIBRARY",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(
        "umple_lsp.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "no-global-config.yaml"
    )
