# product_ratings.py
from typing import Any, Dict, Iterable, List, Mapping

CRITERIA: List[str] = ["effectiveness", "scent", "ease_of_use"]
MIN_SCORE, MAX_SCORE = 1, 10


def validate_scores(raw: Mapping[str, Any]) -> Dict[str, int]:
    """Scores must be whole numbers in 1..10; raises ValueError naming the criterion."""
    scores = {}
    for key in CRITERIA:
        value = raw.get(key)
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise ValueError(f"'{key}' must be an integer between {MIN_SCORE} and {MAX_SCORE}")
        try:
            score = int(value)
        except ValueError:
            raise ValueError(f"'{key}' must be an integer between {MIN_SCORE} and {MAX_SCORE}")
        if not MIN_SCORE <= score <= MAX_SCORE:
            raise ValueError(f"'{key}' must be between {MIN_SCORE} and {MAX_SCORE}, got {score}")
        scores[key] = score
    return scores


def rating_class(average: float) -> str:
    if average < 4:
        return "poor"
    if average < 7:
        return "average"
    return "good"


def summarize_product(ratings: List[Mapping[str, int]]) -> Dict[str, Any]:
    count = len(ratings)
    averages = {k: round(sum(r[k] for r in ratings) / count, 1) for k in CRITERIA}
    # overall is taken over the already rounded criterion averages
    overall = sum(averages.values()) / len(CRITERIA)
    return {
        "count": count,
        "averages": averages,
        "overall": round(overall, 1),
        "class": rating_class(overall),
    }


def summarize_ratings(products: Iterable[Mapping[str, Any]],
                      ratings_by_product: Mapping[str, List[Mapping[str, int]]]) -> Dict[str, Any]:
    """Dashboard payload: totals over every score plus one entry per rated product."""
    products = list(products)
    total_ratings, total_score, score_count = 0, 0, 0
    per_product = []
    for product in products:
        ratings = ratings_by_product.get(product["id"], [])
        total_ratings += len(ratings)
        for r in ratings:
            total_score += sum(r[k] for k in CRITERIA)
            score_count += len(CRITERIA)
        if ratings:
            per_product.append({**product, **summarize_product(ratings)})

    return {
        "total_products": len(products),
        "total_ratings": total_ratings,
        "overall_average": round(total_score / score_count, 1) if score_count else 0,
        "products": per_product,
    }
