"""
Shared pytest fixtures for eligibility wizard tests.

Provides fixtures for:
- The bundled Jamaica rule document and country registry
- Small synthetic rule documents (see factories.py)
- Temporary config directories with custom YAML
"""

import pytest
from pathlib import Path
from typing import Any, Callable, Dict
import yaml

from citizenship_wizard.config_loader import ConfigLoader
from citizenship_wizard.models import Branch, FlowEntry, Rule, RuleDocument

from factories import build_document, cond, outcome


# =============================================================================
# Bundled configuration
# =============================================================================

@pytest.fixture(scope="session")
def loader() -> ConfigLoader:
    return ConfigLoader()


@pytest.fixture(scope="session")
def registry(loader):
    return loader.load_countries()


@pytest.fixture(scope="session")
def jamaica(loader) -> RuleDocument:
    """The Jamaica citizenship-by-descent rule document (v1.0.0)."""
    return loader.load_rule_document("rules/jm-cbd-v1.yaml")


# =============================================================================
# Synthetic documents
# =============================================================================

@pytest.fixture
def linear_document() -> RuleDocument:
    """Three questions, no flow table, one rule on q1."""
    return build_document(
        rules=[Rule(id="yes", conditions=(cond("q1", "equals", "true"),), result=outcome("eligible"), priority=1)],
    )


@pytest.fixture
def branching_document() -> RuleDocument:
    """q1 = 'stop' ends the wizard, q1 = 'skip' jumps to q3, anything else goes to q2."""
    return build_document(
        flow=[
            FlowEntry(
                question_id="q1",
                branches=(
                    Branch(conditions=(cond("q1", "equals", "stop"),), next_question_id=None),
                    Branch(conditions=(cond("q1", "equals", "skip"),), next_question_id="q3"),
                ),
                default_next="q2",
            ),
        ],
    )


# =============================================================================
# Temporary config directories
# =============================================================================

@pytest.fixture
def config_dir_factory(tmp_path) -> Callable[..., Path]:
    """
    Write YAML files into a temporary config directory.

    config_dir_factory({"countries.yaml": {...}, "rules/a.yaml": {...}})
    """
    def _create(files: Dict[str, Any]) -> Path:
        for relative, content in files.items():
            path = tmp_path / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                if isinstance(content, str):
                    f.write(content)
                else:
                    yaml.safe_dump(content, f, allow_unicode=True, sort_keys=False)
        return tmp_path
    return _create
