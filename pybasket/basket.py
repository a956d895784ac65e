import enum
from dataclasses import dataclass, field
import numpy as np

from .errors import ValidationError, UnsupportedVariantError
from .curve import Curve, as_curve
from .correlation import CorrMatrix


class OptionType(enum.IntEnum):
    """
    Option kind. The integer values follow the `cp` convention: 1/-1 for call/put.
    """
    CALL = 1
    PUT = -1

    @classmethod
    def parse(cls, kind):
        """
        Option kind from OptionType, 1/-1 or 'call'/'put' (case-insensitive)
        """
        if isinstance(kind, cls):
            return kind
        if isinstance(kind, str):
            try:
                return cls[kind.strip().upper()]
            except KeyError:
                raise UnsupportedVariantError(f"Unsupported option kind: {kind!r}") from None
        try:
            return cls(kind)
        except (ValueError, TypeError):
            raise UnsupportedVariantError(f"Unsupported option kind: {kind!r}") from None


@dataclass(frozen=True)
class Asset:
    """
    Single asset with spot price, constant dividend yield and volatility (constant or deterministic curve).

    Examples:
        >>> import pybasket as pb
        >>> pb.Asset("A", spot=100, sigma=0.2, divr=0.02)
        >>> pb.Asset("B", spot=120, sigma=[(0, 0.2), (1, 0.3)], divr=0.015)
    """

    name: str
    spot: float
    sigma: Curve
    divr: float = 0.0

    def __post_init__(self):
        if not self.spot > 0:
            raise ValidationError(f"Spot price of {self.name} must be positive, got {self.spot}")
        if not self.divr >= 0:
            raise ValidationError(f"Dividend rate of {self.name} must be non-negative, got {self.divr}")

        sigma = as_curve(self.sigma)
        if len(sigma) == 0:
            raise ValidationError(f"Volatility curve of {self.name} has no control points")
        if np.any(sigma.value_pts < 0):
            raise ValidationError(f"Volatility of {self.name} must be non-negative")

        object.__setattr__(self, "spot", float(self.spot))
        object.__setattr__(self, "divr", float(self.divr))
        object.__setattr__(self, "sigma", sigma)

    @property
    def is_const_vol(self):
        return self.sigma.is_const


class Basket:
    """
    Weighted basket of assets with a correlation matrix and an interest rate (constant or curve).
    Immutable after construction.
    """

    WEIGHT_TOL = 1e-6

    def __init__(self, assets, weight, cor, intr=0.0):
        """
        Args:
            assets: list of Asset
            weight: asset weights, positive and summing to 1. (n_asset, ) array
            cor: correlation. CorrMatrix, (n_asset, n_asset) matrix, or scalar for equal off-diagonal values.
            intr: interest rate. Scalar (flat) or Curve or (time, rate) pairs.
        """
        assets = tuple(assets)
        if len(assets) == 0:
            raise ValidationError("Basket must contain at least one asset")
        for asset in assets:
            if not isinstance(asset, Asset):
                raise ValidationError(f"Basket components must be Asset, got {type(asset).__name__}")
        n_asset = len(assets)

        weight = np.array(weight, dtype=float).flatten()
        if len(weight) != n_asset:
            raise ValidationError(f"Number of weights ({len(weight)}) must equal number of assets ({n_asset})")
        if not np.all(np.isfinite(weight)):
            raise ValidationError(f"Weights must be finite, got {weight}")
        if np.any(weight <= 0):
            raise ValidationError("Weights must be positive")
        if abs(np.sum(weight) - 1.0) > self.WEIGHT_TOL:
            raise ValidationError(f"Sum of weights must equal 1, got {np.sum(weight)}")

        if not isinstance(cor, CorrMatrix):
            if n_asset == 1 and cor is None:
                cor = 1.0
            cor = CorrMatrix(cor, n_asset=n_asset)
        elif cor.n != n_asset:
            raise ValidationError(f"Correlation matrix must be {n_asset}x{n_asset}, got {cor.shape}")

        intr = as_curve(intr)
        if len(intr) == 0:
            raise ValidationError("Rate curve has no control points")

        self.assets = assets
        self.n_asset = n_asset
        self.weight = weight
        self.weight.flags.writeable = False
        self.cor = cor
        self.intr = intr

    @property
    def spot(self):
        return np.array([a.spot for a in self.assets])

    @property
    def divr(self):
        return np.array([a.divr for a in self.assets])

    @property
    def sigma(self):
        return [a.sigma for a in self.assets]

    @property
    def is_const(self):
        """
        True if the rate and all volatilities are constant (H1 model)
        """
        return self.intr.is_const and all(a.is_const_vol for a in self.assets)

    def value(self):
        """
        Current basket value, sum of weight * spot
        """
        return float(self.weight @ self.spot)

    def __repr__(self):
        names = ", ".join(a.name for a in self.assets)
        return f"Basket([{names}], weight={self.weight.tolist()})"


def build_basket(assets, weight, cor, intr=0.0):
    """
    Basket with all invariants validated

    Raises:
        ValidationError: on any invalid input
    """
    return Basket(assets, weight, cor, intr=intr)


@dataclass(frozen=True)
class BasketOption:
    """
    European call/put option on a basket

    Examples:
        >>> import pybasket as pb
        >>> basket = pb.build_basket([pb.Asset("A", 100, 0.2), pb.Asset("B", 120, 0.25)], [0.6, 0.4], 0.3, intr=0.03)
        >>> option = pb.BasketOption(basket, "call", strike=basket.value(), texp=1.0)
        >>> option.payoff(np.array([100.0, 110.0]))
        array([0., 2.])
    """

    basket: Basket
    kind: OptionType
    strike: float
    texp: float = field(default=1.0)

    def __post_init__(self):
        if not isinstance(self.basket, Basket):
            raise ValidationError(f"basket must be Basket, got {type(self.basket).__name__}")
        if not self.strike > 0:
            raise ValidationError(f"Strike must be positive, got {self.strike}")
        if not self.texp > 0:
            raise ValidationError(f"Maturity must be positive, got {self.texp}")
        object.__setattr__(self, "kind", OptionType.parse(self.kind))
        object.__setattr__(self, "strike", float(self.strike))
        object.__setattr__(self, "texp", float(self.texp))

    @property
    def cp(self):
        return int(self.kind)

    def payoff(self, value):
        """
        Payoff at expiry

        Args:
            value: basket value (scalar or array)

        Returns:
            max(value - K, 0) for call, max(K - value, 0) for put
        """
        return payoff(value, self.strike, self.kind)


def payoff(value, strike, kind):
    if kind == OptionType.CALL:
        return np.fmax(value - strike, 0.0)
    elif kind == OptionType.PUT:
        return np.fmax(strike - value, 0.0)
    else:
        raise UnsupportedVariantError(f"Unsupported option kind: {kind!r}")
