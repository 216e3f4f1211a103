def rounded_ratio(numerator: int, denominator: int) -> int:
    """
    round(numerator / denominator) en arrondi "half-up", calculé en entiers
    (pas d'arrondi bancaire comme round(), pas d'erreur flottante).
    """
    if denominator <= 0:
        return 0
    return (2 * numerator + denominator) // (2 * denominator)


def accuracy_percentage(correct: int, total: int) -> int:
    # 1/3 -> 33, 2/3 -> 67, 1/8 -> 13
    return rounded_ratio(100 * correct, total)
