"""
Query Catalog
=============
Usage query batch definitions loaded from YAML.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from pydantic import ValidationError

from flexdash.config import settings
from flexdash.schemas.usage import QuerySpec

logger = structlog.get_logger()

DEFAULT_SOURCE = "defaults"


class QueryCatalog:
    """
    Ordered batch of usage queries submitted for every account selection.

    Loads definitions from a YAML file and falls back to the built-in
    batch when the file is missing or invalid.
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or settings.queries_config_path
        self.source = DEFAULT_SOURCE
        self._specs: list[QuerySpec] = []
        self._load_queries()

    def _load_queries(self) -> None:
        """Load query definitions from YAML file."""
        config_file = Path(self.config_path)

        if not config_file.exists():
            logger.warning("Query config not found, using defaults", path=self.config_path)
            self._use_defaults()
            return

        try:
            with open(config_file) as f:
                data = yaml.safe_load(f) or {}
            self._specs = self._parse(data)
            self.source = str(config_file)
            logger.info(
                "Loaded query configuration",
                path=self.config_path,
                queries=len(self._specs),
            )
        except (OSError, yaml.YAMLError, ValidationError, TypeError, ValueError) as e:
            logger.error("Failed to load query config", path=self.config_path, error=str(e))
            self._use_defaults()

    @staticmethod
    def _parse(data: dict[str, Any]) -> list[QuerySpec]:
        entries = data.get("queries") if isinstance(data, dict) else None
        if not entries:
            raise ValueError("'queries' must be a non-empty list")

        specs = []
        for index, entry in enumerate(entries, start=1):
            entry = dict(entry)
            entry.setdefault("name", f"usecase{index}")
            specs.append(QuerySpec.model_validate(entry))
        return specs

    def _use_defaults(self) -> None:
        self._specs = self._get_default_queries()
        self.source = DEFAULT_SOURCE

    def _get_default_queries(self) -> list[QuerySpec]:
        """Return the default six-query batch if config file is missing."""
        return [
            QuerySpec(
                name=f"usecase{i}",
                fields=("usageCategory", "productName"),
                metrics=("tokensConsumed",),
                where="contractYear=1",
            )
            for i in range(1, 7)
        ]

    def reload(self) -> None:
        """Reload query configuration from file."""
        self._load_queries()

    @property
    def specs(self) -> list[QuerySpec]:
        return list(self._specs)

    def __len__(self) -> int:
        return len(self._specs)


@lru_cache
def get_query_catalog() -> QueryCatalog:
    """Get cached query catalog instance."""
    return QueryCatalog()
