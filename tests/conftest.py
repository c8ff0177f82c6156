import sys
from pathlib import Path

import pytest

# This file lives at <project_root>/tests/conftest.py
THIS_FILE = Path(__file__).resolve()
PROJECT_ROOT = THIS_FILE.parents[1]
SRC_DIR = PROJECT_ROOT / "src"

# Make 'import langgen' work from a plain checkout as well as an installed one
src_path = str(SRC_DIR)
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from langgen.grammar import Grammar  # noqa: E402


@pytest.fixture
def expression_grammar():
    return Grammar.from_pairs(
        [
            ("E", "!E"),
            ("E", "E*E"),
            ("E", "E+E"),
            ("E", "(E)"),
            ("E", "n"),
        ]
    )


@pytest.fixture
def default_config_path():
    return PROJECT_ROOT / "config" / "default_grammar.toml"
