from __future__ import annotations


def classify(value: float) -> str:
    """Fear & Greed band for a 0-100 reading."""
    if value <= 20:
        return "Extreme Fear"
    if value <= 40:
        return "Fear"
    if value <= 60:
        return "Neutral"
    if value <= 80:
        return "Greed"
    return "Extreme Greed"
