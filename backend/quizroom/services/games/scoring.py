import math

FULL_POINTS_WINDOW_SEC = 5
REDUCED_POINTS_WINDOW_SEC = 10


def score(elapsed_seconds: float, base_points: int, is_correct: bool) -> int:
    """Points awarded for one answer.

    Time-decay tiers on the server-measured answer latency:
    up to 5s earns the full base points, up to 10s earns 75%, anything
    slower earns 50%. Fractional points are floored. Wrong answers earn 0.
    """
    if not is_correct:
        return 0
    if elapsed_seconds <= FULL_POINTS_WINDOW_SEC:
        return base_points
    if elapsed_seconds <= REDUCED_POINTS_WINDOW_SEC:
        return math.floor(base_points * 0.75)
    return math.floor(base_points * 0.5)
