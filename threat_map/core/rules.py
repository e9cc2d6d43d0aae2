"""
Rule store: loads baseline and supplemental rule sets from a directory.

Loading is best effort. A broken rule-set document is logged and skipped;
only a rules directory that cannot be created or read stops initialization.
The supplemental document is optional, and any problem with it leaves the
supplemental collection empty.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path

from pydantic import ValidationError

from threat_map.core.errors import RuleLoadError
from threat_map.models.schemas import EngineConfig, Rule, RuleSet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuleSetLoadResult:
    """Outcome of loading one rule-set document."""

    path: Path
    rules: tuple[Rule, ...] = ()
    error: str | None = None
    skipped_rules: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RuleCatalog:
    """The two ordered rule collections the analyzer runs."""

    baseline: tuple[Rule, ...] = ()
    supplemental: tuple[Rule, ...] = ()
    results: tuple[RuleSetLoadResult, ...] = field(default=(), compare=False)


def read_rule_set(path: Path) -> RuleSetLoadResult:
    """
    Read and validate one rule-set document.

    Never raises: any problem with the document is reported in the result.
    Rule entries that fail validation are dropped individually.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        rule_set = RuleSet.model_validate(data)
    except (OSError, ValueError) as e:
        # json.JSONDecodeError and pydantic.ValidationError are ValueErrors
        return RuleSetLoadResult(path=path, error=f"{type(e).__name__}: {e}")

    rules: list[Rule] = []
    skipped = 0
    for position, entry in enumerate(rule_set.rules):
        try:
            rules.append(Rule.model_validate(entry))
        except ValidationError as e:
            skipped += 1
            logger.warning("Skipping invalid rule #%d in %s: %s", position, path.name, e)

    return RuleSetLoadResult(path=path, rules=tuple(rules), skipped_rules=skipped)


def load_baseline_rules(rules_dir: Path, reserved_prefix: str) -> list[RuleSetLoadResult]:
    """
    Load every baseline rule-set document in ``rules_dir``.

    Documents are read in file name order; names starting with
    ``reserved_prefix`` belong to the supplemental set and are skipped.

    Raises:
        RuleLoadError: The directory does not exist and cannot be created,
            or cannot be listed.
    """
    try:
        if not rules_dir.exists():
            logger.warning("Rules directory %s not found. Creating it.", rules_dir)
            rules_dir.mkdir(parents=True, exist_ok=True)
        paths = sorted(
            path
            for path in rules_dir.iterdir()
            if path.suffix == ".json" and not path.name.startswith(reserved_prefix)
        )
    except OSError as e:
        logger.error("Failed to load baseline rules from %s: %s", rules_dir, e)
        raise RuleLoadError(f"Cannot read rules directory {rules_dir}: {e}") from e

    results = []
    for path in paths:
        result = read_rule_set(path)
        if result.ok:
            logger.info("Loaded %d baseline rules from %s", len(result.rules), path.name)
        else:
            logger.error("Error loading baseline rules from %s: %s", path.name, result.error)
        results.append(result)
    return results


def load_supplemental_rules(path: Path) -> RuleSetLoadResult:
    """Load the optional supplemental rule-set document. Never raises."""
    if not path.is_file():
        logger.warning(
            "Supplemental rules file %s not found. Supplemental threat detection will not be available.",
            path.name,
        )
        return RuleSetLoadResult(path=path, error="not found")

    result = read_rule_set(path)
    if result.ok:
        logger.info("Loaded %d supplemental rules from %s", len(result.rules), path.name)
    else:
        logger.warning(
            "Supplemental rules file %s is invalid, no supplemental rules loaded: %s",
            path.name,
            result.error,
        )
    return result


class RuleStore:
    """
    Holds the rule catalog and loads it once.

    Usage:
        >>> store = RuleStore(EngineConfig(rules_dir=Path("rules")))
        >>> store.initialize()
        >>> len(store.baseline)
        12

    ``initialize`` may be called from several threads; the first caller
    loads, the others wait for it. The catalog is published only after both
    sources were attempted.
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()
        self._catalog = RuleCatalog()
        self._initialized = False
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def baseline(self) -> tuple[Rule, ...]:
        return self._catalog.baseline

    @property
    def supplemental(self) -> tuple[Rule, ...]:
        return self._catalog.supplemental

    @property
    def load_results(self) -> tuple[RuleSetLoadResult, ...]:
        return self._catalog.results

    def initialize(self) -> None:
        """
        Load both rule sources. Does nothing once the store is initialized.

        Raises:
            RuleLoadError: The baseline rules directory is unusable. The
                store stays uninitialized and ``initialize`` may be retried.
        """
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return
            try:
                self._catalog = self._load()
            except RuleLoadError:
                logger.exception("Failed to initialize rule store")
                raise
            self._initialized = True

        logger.info(
            "Rule store initialized with %d baseline rules and %d supplemental rules",
            len(self.baseline),
            len(self.supplemental),
        )

    def _load(self) -> RuleCatalog:
        baseline_results = load_baseline_rules(
            self.config.rules_dir, self.config.supplemental_prefix
        )
        supplemental_result = load_supplemental_rules(self.config.supplemental_path)

        baseline = tuple(rule for result in baseline_results for rule in result.rules)
        return RuleCatalog(
            baseline=baseline,
            supplemental=supplemental_result.rules,
            results=(*baseline_results, supplemental_result),
        )
