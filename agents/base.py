"""
Base Analyzer class and owner-selection policy
Market Research Analytics Engine
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type
import logging
import traceback
import time

from config.settings import Settings, settings
from models.schemas import AnalysisResult

logger = logging.getLogger(__name__)


class InsufficientInputError(ValueError):
    """Required input fields are absent or malformed."""


class Analyzer(ABC):
    """
    Abstract base class for all analyzers.
    Subclasses implement `run(*inputs, options=...)` and raise
    InsufficientInputError when they have nothing to work with.
    `execute()` guarantees a result object is always returned.
    """

    result_cls: Type[AnalysisResult] = AnalysisResult

    def __init__(self, name: str, config: Optional[Settings] = None):
        self.name = name
        self.config = config or settings
        self.logger = logging.getLogger(f"analyzer.{name}")

    @abstractmethod
    def run(self, *inputs: Any, options: Dict[str, Any]) -> AnalysisResult:
        raise NotImplementedError

    def execute(self, *inputs: Any, options: Optional[Mapping[str, Any]] = None) -> AnalysisResult:
        """
        Wraps `run()` with timing, structured logging, and error handling.
        Missing input → method="none"; any other exception → method="error".
        """
        opts = dict(options or {})
        started = time.perf_counter()
        self.logger.info(f"[{self.name}] Starting...")
        try:
            result = self.run(*inputs, options=opts)
        except InsufficientInputError as e:
            self.logger.warning(f"[{self.name}] Insufficient input: {e}")
            return self.result_cls(confidence=0.0, method="none", error=str(e))
        except Exception as e:
            self.logger.error(f"[{self.name}] Failed: {e}\n{traceback.format_exc()}")
            return self.result_cls(confidence=0.0, method="error", error=str(e) or type(e).__name__)

        result.confidence = min(max(float(result.confidence), 0.0), 1.0)
        duration = time.perf_counter() - started
        self.logger.info(
            f"[{self.name}] Completed in {duration:.3f}s "
            f"(method={result.method}, confidence={result.confidence:.2f})"
        )
        return result

    def option(self, options: Mapping[str, Any], key: str, default: Any) -> Any:
        value = options.get(key)
        return default if value is None else value

    def __repr__(self):
        return f"<Analyzer: {self.name}>"


# ─── Owner Selection ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class OwnerSelector:
    """
    Decides which competitor record represents the company running the
    analysis. Priority: explicit `own_name`, then an ownership flag on the
    record, then the legacy "Own"/"Self" names (kept for old payloads only).
    """
    own_name: Optional[str] = None
    flags: Tuple[str, ...] = ("isOwn", "isOwnCompany", "is_own", "is_own_company")
    legacy_names: Tuple[str, ...] = ("Own", "Self")

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]]) -> "OwnerSelector":
        options = options or {}
        owner = options.get("owner")
        if isinstance(owner, OwnerSelector):
            return owner
        own_name = next(
            (options[k] for k in ("own_name", "ownName", "own_company_name", "ownCompanyName")
             if options.get(k)),
            None,
        )
        if isinstance(owner, str):
            own_name = own_name or owner
        return cls(own_name=own_name)

    def _flagged(self, record: Mapping[str, Any]) -> bool:
        return any(record.get(flag) is True for flag in self.flags)

    def select(self, names: List[str], records: List[Mapping[str, Any]]) -> Optional[int]:
        """Index of the owner among `records` (parallel to `names`), or None."""
        if self.own_name is not None:
            for i, name in enumerate(names):
                if name == self.own_name:
                    return i
            return None
        for i, record in enumerate(records):
            if self._flagged(record):
                return i
        # backward compatibility: older payloads mark the owner by name only
        for i, name in enumerate(names):
            if name in self.legacy_names:
                logger.debug(f"Owner identified by legacy name '{name}'")
                return i
        return None
