import numpy as np
from .errors import ValidationError


class Curve:
    """
    Deterministic term structure (interest rate or volatility) given by control points (time, value).
    Values are linearly interpolated between points and clamped to the boundary values outside.

    Examples:
        >>> import pybasket as pb
        >>> c = pb.Curve([(0.0, 0.1), (1.0, 0.3)])
        >>> c.value([-1.0, 0.5, 2.0])
        array([0.1, 0.2, 0.3])
    """

    N_STEP = 1000  # default number of trapezoidal steps

    time = value_pts = None

    def __init__(self, points=()):
        """
        Args:
            points: iterable of (time, value) pairs. Times must be non-negative.
                For duplicate times, the later entry overwrites the earlier one.
        """
        pts = {}
        for t, v in points:
            t, v = float(t), float(v)
            if not (np.isfinite(t) and np.isfinite(v)):
                raise ValidationError(f"Curve point must be finite, got ({t}, {v})")
            if t < 0.0:
                raise ValidationError(f"Curve time must be non-negative, got {t}")
            pts[t] = v

        time = np.array(sorted(pts.keys()), dtype=float)
        self.time = time
        self.value_pts = np.array([pts[t] for t in time], dtype=float)
        self.time.flags.writeable = False
        self.value_pts.flags.writeable = False

    @classmethod
    def flat(cls, value):
        """
        Constant curve

        Args:
            value: constant value

        Returns:
            Curve instance
        """
        return cls([(0.0, value)])

    def __len__(self):
        return len(self.time)

    def __repr__(self):
        pts = ", ".join(f"({t:g}, {v:g})" for t, v in zip(self.time, self.value_pts))
        return f"Curve([{pts}])"

    @property
    def is_const(self):
        return len(self.time) > 0 and np.all(self.value_pts == self.value_pts[0])

    def _check(self):
        if len(self.time) == 0:
            raise ValidationError("No control points defined in the curve")

    def value(self, t):
        """
        Interpolated value at time t. Clamped to the first/last value outside the control points.

        Args:
            t: time (scalar or array)

        Returns:
            curve value
        """
        self._check()
        val = np.interp(t, self.time, self.value_pts)
        return float(val) if np.isscalar(t) else val

    def _n_step(self, n_step):
        n_step = int(self.N_STEP if n_step is None else n_step)
        if n_step < 1:
            raise ValidationError(f"n_step must be positive, got {n_step}")
        return n_step

    def _grid(self, texp, n_step):
        n_step = self._n_step(n_step)
        return np.linspace(0.0, texp, n_step + 1), texp / n_step

    @staticmethod
    def _trapz(y, dt):
        return dt * (np.sum(y) - 0.5 * (y[0] + y[-1]))

    def integrate(self, texp, n_step=None):
        """
        Integral of the curve from 0 to texp by the composite trapezoidal rule.

        Args:
            texp: upper limit of the integral
            n_step: number of steps. `N_STEP` (1000) if None.

        Returns:
            integral value
        """
        self._check()
        self._n_step(n_step)
        if texp <= 0.0:
            return 0.0
        if self.is_const:
            return self.value_pts[0] * texp

        tt, dt = self._grid(texp, n_step)
        return float(self._trapz(self.value(tt), dt))

    def integrated_variance(self, texp, n_step=None):
        """
        Integral of the squared curve (sigma(s)^2) from 0 to texp.

        Args:
            texp: upper limit of the integral
            n_step: number of steps. `N_STEP` (1000) if None.

        Returns:
            integrated variance
        """
        return integrated_cross_variance(self, self, texp, n_step=n_step)

    def discount_factor(self, texp, n_step=None):
        """
        Discount factor exp(-int_0^texp r(s) ds) when the curve is an interest rate curve.
        """
        return np.exp(-self.integrate(texp, n_step=n_step))


def integrated_cross_variance(curve_a, curve_b, texp, n_step=None):
    """
    Integral of sigma_A(s) * sigma_B(s) from 0 to texp by the composite trapezoidal rule.

    Args:
        curve_a: volatility curve of asset A
        curve_b: volatility curve of asset B
        texp: upper limit of the integral
        n_step: number of steps. `Curve.N_STEP` (1000) if None.

    Returns:
        integrated covariance (without correlation)
    """
    curve_a._check()
    curve_b._check()
    curve_a._n_step(n_step)
    if texp <= 0.0:
        return 0.0
    if curve_a.is_const and curve_b.is_const:
        return curve_a.value_pts[0] * curve_b.value_pts[0] * texp

    tt, dt = curve_a._grid(texp, n_step)
    return float(curve_a._trapz(curve_a.value(tt) * curve_b.value(tt), dt))


def as_curve(x):
    """
    Curve from a curve, a scalar (flat curve) or a sequence of (time, value) pairs.
    """
    if isinstance(x, Curve):
        return x
    if np.isscalar(x):
        return Curve.flat(x)
    return Curve(x)
