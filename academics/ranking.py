"""Standard competition ranking ("1224"): ties share a position, the next
distinct score resumes after the tied block."""

# Averages are quotients of float sums; compare them at a fixed precision so
# that equal marks always tie.
SCORE_PRECISION = 6


def competition_positions(scores):
    """
    Positions for ``scores`` already sorted from highest to lowest.

    >>> competition_positions([90, 85, 85, 70])
    [1, 2, 2, 4]
    """
    positions = []
    current_position = 1
    last_score = None

    for index, score in enumerate(scores):
        score = round(score, SCORE_PRECISION)
        if last_score is not None and score < last_score:
            current_position = index + 1
        positions.append(current_position)
        last_score = score

    return positions


def rank_by(items, key):
    """
    Sort ``items`` by ``key`` (descending) and pair each with its position.

    Ties are listed in their incoming order; that order never changes the
    position they share.
    """
    ordered = sorted(items, key=lambda item: round(key(item), SCORE_PRECISION), reverse=True)
    positions = competition_positions([key(item) for item in ordered])
    return list(zip(ordered, positions))
