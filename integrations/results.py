from dataclasses import dataclass
from typing import Any, Optional


@dataclass(frozen=True)
class AdvisoryResult:
    """
    Outcome of a best-effort call to an optional external service.

    Callers must treat a failed result as "fall back to the primary path";
    nothing in the request flow may depend on ``ok`` being true.
    """
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value=None):
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error):
        return cls(ok=False, error=error)

    @property
    def hit(self):
        """True when the call succeeded and produced a value."""
        return self.ok and self.value is not None

    def value_or(self, default):
        return self.value if self.ok and self.value is not None else default
