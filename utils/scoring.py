"""NDC classification bands for policy-analysis scores.

The dashboard colours countries by the band of their overall index:

    >= 80  Outstanding
    >= 70  Satisfactory
    >= 55  Good
    >= 40  Average
    <  40  Poor

A missing score is reported as "No Data".
"""

NO_DATA = "No Data"

# Lower bounds, highest first.
CLASSIFICATION_BANDS: tuple[tuple[float, str], ...] = (
    (80.0, "Outstanding"),
    (70.0, "Satisfactory"),
    (55.0, "Good"),
    (40.0, "Average"),
)


def classify_score(score: float | None) -> str:
    """Return the NDC band label for *score*."""
    if score is None:
        return NO_DATA
    for lower, label in CLASSIFICATION_BANDS:
        if score >= lower:
            return label
    return "Poor"
