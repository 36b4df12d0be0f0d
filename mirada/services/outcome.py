"""Result values for best-effort side effects.

Email sends and analytics beacons never raise to their caller. They
return an Outcome instead, and the dispatcher decides (visibly) to ignore it.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Outcome:
    ok: bool
    detail: str | None = None

    @classmethod
    def success(cls, detail=None):
        return cls(ok=True, detail=detail)

    @classmethod
    def failure(cls, detail):
        return cls(ok=False, detail=detail)


@dataclass(frozen=True)
class TrackResult:
    """Per-collector outcomes of one tracked event."""

    amplitude: Outcome
    meta: Outcome

    @property
    def ok(self):
        return self.amplitude.ok and self.meta.ok
