from __future__ import annotations

from dataclasses import dataclass

from scorecard.db.models import HoleScore

BELOW_PAR_WITH_SCRATCH = "below_par_with_scratch"
PAR_WITH_SCRATCH = "par_with_scratch"
SCORE_REDUCTION = "score_reduction"
RAPID_SCORING = "rapid_scoring"

ALERT_TYPES = [
    BELOW_PAR_WITH_SCRATCH,
    PAR_WITH_SCRATCH,
    SCORE_REDUCTION,
    RAPID_SCORING,
]

SEVERITY = {
    BELOW_PAR_WITH_SCRATCH: "high",
    PAR_WITH_SCRATCH: "medium",
    SCORE_REDUCTION: "medium",
    RAPID_SCORING: "medium",
}


@dataclass(frozen=True)
class Finding:
    alert_type: str
    message: str

    @property
    def severity(self) -> str:
        return SEVERITY[self.alert_type]


def _plural_scratch(count: int) -> str:
    return f"{count} scratch{'es' if count > 1 else ''}"


def inspect_hole(
    *,
    hole: int,
    par: int,
    strokes: int,
    scratches: int,
    previous: HoleScore | None,
) -> list[Finding]:
    """Content checks for one submission against the pre-write record.

    Penalties are ignored here: a scratch is what makes a par or better
    suspicious, and a reduction compares strokes plus scratches only.
    """
    findings: list[Finding] = []
    total = strokes + scratches

    if scratches > 0 and par > 0 and total < par:
        findings.append(
            Finding(
                BELOW_PAR_WITH_SCRATCH,
                f"Scored {total} (below par {par}) with {_plural_scratch(scratches)}. Highly suspicious.",
            )
        )
    elif scratches > 0 and par > 0 and total == par:
        findings.append(
            Finding(
                PAR_WITH_SCRATCH,
                f"Scored par ({par}) with {_plural_scratch(scratches)}. Please verify.",
            )
        )

    # Cannot tell a director's correction from a self-serving edit.
    if previous is not None:
        old_total = previous.strokes + previous.scratches
        if total < old_total:
            findings.append(
                Finding(
                    SCORE_REDUCTION,
                    f"Reduced hole {hole} score from {old_total} to {total}. Was this a legitimate correction?",
                )
            )
    return findings
