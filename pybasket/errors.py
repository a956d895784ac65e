class ValidationError(ValueError):
    """
    Invalid input: non-positive spot/strike/maturity, bad weights, bad correlation matrix, empty basket or curve.
    """
    pass


class NumericalError(ArithmeticError):
    """
    Numerical breakdown, e.g., Cholesky factorization of a matrix that is not positive semi-definite.
    """
    pass


class UnsupportedVariantError(ValueError):
    """
    Option kind not recognized by a payoff or pricing switch.
    """
    pass


class MomentFloorWarning(UserWarning):
    """
    The second moment was floored at M1^2 * (1 + eps) in the lognormal moment matching.
    """
    pass
