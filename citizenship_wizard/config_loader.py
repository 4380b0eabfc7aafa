"""
Configuration Loader for rule documents and the country list.

Loads per-country rule documents and countries.yaml from YAML files,
converts them into model objects and validates them.

Layout of the config directory:
    countries.yaml          country metadata + rules file of active countries
    rules/<name>.yaml       one rule document per country pathway

Structural problems (no questions, duplicate ids, malformed conditions)
raise ConfigValidationError. References to unknown questions are only
warnings: at runtime they evaluate as "no match" / "end of wizard", so a
partly broken document still produces an outcome. Set
rules.strict_references to refuse such documents instead.
"""

from pathlib import Path
from typing import Dict, Any, Optional, List, Tuple, Union
import logging

import yaml

from citizenship_wizard.errors import ConfigLoadError, ConfigValidationError
from citizenship_wizard.models import (
    AnswerKind,
    FlowEntry,
    Operator,
    Outcome,
    Question,
    Rule,
    RuleDocument,
)
from citizenship_wizard.registry import CountryMetadata, CountryRegistry
from citizenship_wizard.settings import settings

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_DIR = Path(__file__).parent / "yaml_config"


class ConfigLoader:
    """
    Loads and validates YAML rule configuration.

    Provides:
    - Loading of rule documents from rules/*.yaml
    - Loading of countries.yaml into a CountryRegistry
    - Validation of ids and references inside a document
    """

    def __init__(
        self,
        config_dir: Optional[Union[str, Path]] = None,
        strict_references: Optional[bool] = None,
    ):
        """
        Initialize config loader.

        Args:
            config_dir: Config directory (defaults to rules.config_dir setting,
                then to the bundled yaml_config/)
            strict_references: Treat unknown question references as errors
                (defaults to rules.strict_references setting)
        """
        if config_dir is None:
            config_dir = settings.get_nested("rules.config_dir") or DEFAULT_CONFIG_DIR
        self.config_dir = Path(config_dir)

        if strict_references is None:
            strict_references = bool(settings.get_nested("rules.strict_references", False))
        self.strict_references = strict_references

    # =========================================================================
    # Loading
    # =========================================================================

    def _load_yaml(self, relative_path: str, required: bool = True) -> Dict[str, Any]:
        """
        Load a YAML file relative to config_dir.

        Raises:
            ConfigLoadError: If a required file is missing or parsing fails
        """
        file_path = self.config_dir / relative_path

        if not file_path.exists():
            if required:
                raise ConfigLoadError(str(file_path), "File not found")
            return {}

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(str(file_path), f"YAML parse error: {e}") from e
        except OSError as e:
            raise ConfigLoadError(str(file_path), str(e)) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigLoadError(str(file_path), "Top level must be a mapping")
        return data

    def load_rule_document(self, relative_path: str, validate: bool = True) -> RuleDocument:
        """
        Load one rule document.

        Args:
            relative_path: Path relative to config_dir (e.g. 'rules/jm-cbd-v1.yaml')
            validate: Whether to validate the document

        Raises:
            ConfigLoadError: If the file cannot be read or has a malformed entry
            ConfigValidationError: If validation fails
        """
        data = self._load_yaml(relative_path, required=True)
        source = str(self.config_dir / relative_path)
        document, parse_errors = self.parse_rule_document(data, source)

        if validate:
            self._raise_on_errors(document, parse_errors, source)

        logger.info(
            "Loaded rule document %s@%s (%d questions, %d rules)",
            document.country_code, document.version,
            len(document.questions), len(document.rules),
        )
        return document

    def parse_rule_document(
        self,
        data: Dict[str, Any],
        source: str = "<memory>",
    ) -> Tuple[RuleDocument, List[str]]:
        """
        Build a RuleDocument from a mapping.

        Returns:
            (document, errors found while parsing that the model cannot
            represent, such as duplicate flow entries)

        Raises:
            ConfigLoadError: If an entry is missing required keys or uses
                unknown enum values
        """
        errors: List[str] = []

        try:
            raw_results = data.get("results") or {}
            if not isinstance(raw_results, dict):
                raise TypeError("'results' must be a mapping of template name to outcome")
            results = {
                name: Outcome.from_dict(outcome)
                for name, outcome in raw_results.items()
            }

            questions = tuple(Question.from_dict(q) for q in data.get("questions") or [])

            question_flow: Dict[str, FlowEntry] = {}
            for raw_entry in data.get("question_flow") or []:
                entry = FlowEntry.from_dict(raw_entry)
                if entry.question_id in question_flow:
                    errors.append(f"Duplicate question_flow entry for '{entry.question_id}'")
                    continue
                question_flow[entry.question_id] = entry

            rules = tuple(Rule.from_dict(r, results) for r in data.get("rules") or [])

            raw_default = data.get("default_result")
            if raw_default is None:
                raise KeyError("default_result")
            if isinstance(raw_default, str):
                if raw_default not in results:
                    raise KeyError(f"Unknown result template '{raw_default}'")
                default_result = results[raw_default]
            else:
                default_result = Outcome.from_dict(raw_default)

            document = RuleDocument(
                country_code=str(data["country_code"]).lower(),
                version=str(data["version"]),
                questions=questions,
                default_result=default_result,
                question_flow=question_flow,
                rules=rules,
                country_name=data.get("country_name", ""),
                description=data.get("description", ""),
                last_updated=str(data.get("last_updated", "")),
                sources=tuple(data.get("sources") or []),
            )
        except KeyError as e:
            raise ConfigLoadError(source, f"Missing key: {e}") from e
        except (AttributeError, TypeError, ValueError) as e:
            raise ConfigLoadError(source, f"Malformed entry: {e}") from e

        return document, errors

    def load_countries(self, validate: bool = True) -> CountryRegistry:
        """
        Load countries.yaml and the rule documents of active countries.

        Returns:
            CountryRegistry with metadata and rule documents

        Raises:
            ConfigLoadError: If a file cannot be loaded
            ConfigValidationError: If a document or the country list is invalid
        """
        countries_file = settings.get_nested("rules.countries_file", "countries.yaml")
        data = self._load_yaml(countries_file, required=True)

        countries: List[CountryMetadata] = []
        rules: Dict[str, RuleDocument] = {}
        errors: List[str] = []

        for raw in data.get("countries") or []:
            try:
                country = CountryMetadata.from_dict(raw)
            except (KeyError, ValueError) as e:
                raise ConfigLoadError(str(self.config_dir / countries_file), f"Malformed country: {e}") from e

            if any(c.code == country.code for c in countries):
                errors.append(f"Duplicate country code '{country.code}'")
                continue
            countries.append(country)

            rules_file = raw.get("rules_file")
            if not country.is_active:
                continue
            if not rules_file:
                logger.warning("Active country '%s' has no rules_file", country.code)
                continue

            document = self.load_rule_document(rules_file, validate=validate)
            if document.country_code != country.code:
                errors.append(
                    f"Rules file '{rules_file}' declares country '{document.country_code}' "
                    f"but is listed under '{country.code}'"
                )
                continue
            rules[country.code] = document

        if validate and errors:
            raise ConfigValidationError(errors, countries_file)

        return CountryRegistry(countries, rules)

    # =========================================================================
    # Validation
    # =========================================================================

    def _raise_on_errors(self, document: RuleDocument, parse_errors: List[str], source: str) -> None:
        errors, warnings = self.validate_document(document)
        errors = parse_errors + errors

        if self.strict_references:
            errors.extend(warnings)
        else:
            for warning in warnings:
                logger.warning("%s: %s", source, warning)

        if errors:
            raise ConfigValidationError(errors, source)

    def validate_document(self, document: RuleDocument) -> Tuple[List[str], List[str]]:
        """
        Validate a rule document.

        Checks:
        - The document has at least one question
        - Question ids and rule ids are unique
        - Select questions have options
        - equals / not_equals conditions compare against a single value
        - Flow entries, branch targets and conditions reference known questions

        Returns:
            (errors, warnings). Unknown question references are warnings.
        """
        errors: List[str] = []
        warnings: List[str] = []

        if not document.questions:
            errors.append(f"No questions defined for country '{document.country_code}'")

        known = set()
        for question in document.questions:
            if question.id in known:
                errors.append(f"Duplicate question id '{question.id}'")
            known.add(question.id)
            if question.kind is AnswerKind.SELECT and not question.options:
                errors.append(f"Select question '{question.id}' has no options")

        rule_ids = set()
        for rule in document.rules:
            if rule.id in rule_ids:
                errors.append(f"Duplicate rule id '{rule.id}'")
            rule_ids.add(rule.id)
            errors.extend(self._validate_conditions(rule.conditions, f"rules.{rule.id}"))
            warnings.extend(self._dangling_conditions(rule.conditions, known, f"rules.{rule.id}"))

        for question_id, entry in document.question_flow.items():
            where = f"question_flow.{question_id}"
            if question_id not in known:
                warnings.append(f"Unknown question '{question_id}' in {where}")

            for index, branch in enumerate(entry.branches):
                branch_where = f"{where}.branches[{index}]"
                errors.extend(self._validate_conditions(branch.conditions, branch_where))
                warnings.extend(self._dangling_conditions(branch.conditions, known, branch_where))
                target = branch.next_question_id
                if target is not None and target not in known:
                    warnings.append(f"Unknown target question '{target}' in {branch_where}")

            if entry.default_next is not None and entry.default_next not in known:
                warnings.append(f"Unknown target question '{entry.default_next}' in {where}.default_next")

        return errors, warnings

    def _validate_conditions(self, conditions, where: str) -> List[str]:
        errors = []
        for condition in conditions:
            if condition.operator in (Operator.EQUALS, Operator.NOT_EQUALS) and condition.is_set_valued:
                errors.append(
                    f"Operator '{condition.operator.value}' on '{condition.question_id}' "
                    f"in {where} needs a single value, got a list"
                )
        return errors

    def _dangling_conditions(self, conditions, known: set, where: str) -> List[str]:
        return [
            f"Condition on unknown question '{c.question_id}' in {where}"
            for c in conditions
            if c.question_id not in known
        ]

    def __repr__(self) -> str:
        return f"ConfigLoader(config_dir={self.config_dir!r})"


def load_registry(config_dir: Optional[Union[str, Path]] = None) -> CountryRegistry:
    """Build a CountryRegistry from a config directory (bundled one by default)."""
    validate = bool(settings.get_nested("rules.validate_on_load", True))
    return ConfigLoader(config_dir).load_countries(validate=validate)
