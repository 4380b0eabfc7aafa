"""
Country registry.

Holds country metadata and the rule document of every active country.
A registry is built explicitly (usually by ConfigLoader.load_countries())
and passed to whoever needs it; there is no process-wide instance.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from citizenship_wizard.errors import CountryNotAvailableError, RulesNotFoundError
from citizenship_wizard.models import RuleDocument


DEFAULT_FLAG = "\U0001F30D"


class CountryStatus(Enum):
    """Availability of a country in the wizard."""
    ACTIVE = "active"
    COMING_SOON = "coming_soon"
    DISABLED = "disabled"


@dataclass(frozen=True)
class CountryMetadata:
    """
    Display metadata of a country.

    Attributes:
        code: ISO 3166-1 alpha-2 code, lower case
        name: Display name
        flag: Flag emoji
        short_description: One-line description for country cards
        status: Availability
        visa_free_countries: Number of visa-free destinations (display only)
        benefits: Key benefits (display only)
    """
    code: str
    name: str
    flag: str = DEFAULT_FLAG
    short_description: str = ""
    status: CountryStatus = CountryStatus.COMING_SOON
    visa_free_countries: Optional[int] = None
    benefits: List[str] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status is CountryStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "flag": self.flag,
            "short_description": self.short_description,
            "status": self.status.value,
            "visa_free_countries": self.visa_free_countries,
            "benefits": list(self.benefits),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CountryMetadata":
        visa_free = data.get("visa_free_countries")
        return cls(
            code=str(data["code"]).lower(),
            name=data["name"],
            flag=data.get("flag") or DEFAULT_FLAG,
            short_description=data.get("short_description", ""),
            status=CountryStatus(data.get("status", "coming_soon")),
            visa_free_countries=int(visa_free) if visa_free is not None else None,
            benefits=list(data.get("benefits") or []),
        )


class CountryRegistry:
    """
    Lookup of countries and their rule documents.

    Usage:
        registry = CountryRegistry(countries, {"jm": jamaica_rules})

        rules = registry.get_rules("jm")       # None unless active
        rules = registry.require_rules("jm")   # raises instead
    """

    def __init__(
        self,
        countries: Iterable[CountryMetadata],
        rules: Optional[Dict[str, RuleDocument]] = None,
    ):
        self._countries: Dict[str, CountryMetadata] = {}
        for country in countries:
            self._countries[country.code] = country
        self._rules: Dict[str, RuleDocument] = dict(rules or {})

    def all_countries(self) -> List[CountryMetadata]:
        return list(self._countries.values())

    def active_countries(self) -> List[CountryMetadata]:
        return [c for c in self._countries.values() if c.status is CountryStatus.ACTIVE]

    def coming_soon_countries(self) -> List[CountryMetadata]:
        return [c for c in self._countries.values() if c.status is CountryStatus.COMING_SOON]

    def get_country(self, code: str) -> Optional[CountryMetadata]:
        return self._countries.get(code)

    def is_active(self, code: str) -> bool:
        country = self.get_country(code)
        return country is not None and country.is_active

    def get_rules(self, code: str) -> Optional[RuleDocument]:
        """Rule document of a country; None if unknown, inactive or missing."""
        if not self.is_active(code):
            return None
        return self._rules.get(code)

    def require_rules(self, code: str) -> RuleDocument:
        """
        Rule document of an active country.

        Raises:
            CountryNotAvailableError: If the country is unknown or not active
            RulesNotFoundError: If the country is active but has no rules
        """
        if not self.is_active(code):
            raise CountryNotAvailableError(code)
        document = self._rules.get(code)
        if document is None:
            raise RulesNotFoundError(code)
        return document

    def get_country_name(self, code: str) -> str:
        country = self.get_country(code)
        return country.name if country else code.upper()

    def get_country_flag(self, code: str) -> str:
        country = self.get_country(code)
        return country.flag if country else DEFAULT_FLAG

    def __len__(self) -> int:
        return len(self._countries)

    def __contains__(self, code: str) -> bool:
        return code in self._countries
