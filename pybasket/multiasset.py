import warnings
import numpy as np

from . import bsm
from . import basket as bk
from . import opt_abc as opt
from .errors import MomentFloorWarning, UnsupportedVariantError


class BsmBasketLevy1992(opt.OptBasketABC):
    """
    Basket option pricing with the log-normal approximation of Levy & Turnbull (1992).
    The first two moments of the terminal basket value are matched to a lognormal variable and
    the option is priced with the Black-Scholes formula on the forward M1.
    Rate and volatilities may be deterministic curves (H2); constant parameters (H1) are the flat-curve case.

    If M2 <= M1^2 (zero or negatively correlated variance), M2 is floored to M1^2 * M2_FLOOR.
    The floor biases the price upward for such baskets and a `MomentFloorWarning` is emitted.

    References:
        - Levy E, Turnbull S (1992) Average intelligence. Risk 1992:53–57
        - Brigo D, Mercurio F, Rapisarda F, Scotti R (2004) Approximated moment-matching dynamics for basket-options
          pricing. Quantitative Finance 4:1–16

    Examples:
        >>> import pybasket as pb
        >>> assets = [pb.Asset("A", 100, sigma=0.2, divr=0.02), pb.Asset("B", 120, sigma=0.25, divr=0.015)]
        >>> basket = pb.build_basket(assets, [0.6, 0.4], cor=0.3, intr=0.03)
        >>> option = pb.BasketOption(basket, "call", strike=basket.value(), texp=1.0)
        >>> pb.BsmBasketLevy1992().price(option)
    """

    M2_FLOOR = 1.0001

    def moments(self, option):
        """
        Risk-neutral moments of the basket value at expiry and the equivalent lognormal parameters.

        Args:
            option: BasketOption

        Returns:
            dict with m1, m2, sigma_hat, mu_hat, df, m2_floored
        """
        basket = option.basket
        texp = option.texp

        fwd, df = self._fwd_factor(basket, texp)
        fwd_basket = fwd * basket.weight
        m1 = np.sum(fwd_basket)
        m2 = fwd_basket @ np.exp(self._cov_int(basket, texp)) @ fwd_basket

        m2_floored = bool(m2 <= m1**2)
        if m2_floored:
            warnings.warn(
                f"M2={m2:g} <= M1^2={m1**2:g}: M2 floored to M1^2*{self.M2_FLOOR}. "
                f"The lognormal approximation is biased for this basket.",
                MomentFloorWarning,
            )
            m2 = m1**2 * self.M2_FLOOR

        sig2 = np.log(m2 / m1**2) / texp
        mu = np.log(m1 / basket.value()) / texp

        return {
            "m1": float(m1),
            "m2": float(m2),
            "sigma_hat": float(np.sqrt(max(sig2, 0.0))),
            "mu_hat": float(mu),
            "df": float(df),
            "m2_floored": m2_floored,
        }

    def price(self, option):
        mom = self.moments(option)
        m1, sig, df = mom["m1"], mom["sigma_hat"], mom["df"]
        texp = option.texp

        if option.kind not in (bk.OptionType.CALL, bk.OptionType.PUT):
            raise UnsupportedVariantError(f"Unsupported option kind: {option.kind!r}")

        if sig <= 0.0 or texp <= 0.0:
            return float(df * bk.payoff(m1, option.strike, option.kind))

        price = bsm.Bsm.price_formula(option.strike, m1, sig, texp, cp=option.cp, is_fwd=True)
        return float(df * price)


def price_moment_matching(option, n_quad=None):
    """
    Basket option price with the lognormal moment matching

    Args:
        option: BasketOption
        n_quad: number of trapezoidal steps for the curve integrals. 1000 if None.

    Returns:
        option price
    """
    return BsmBasketLevy1992(n_quad=n_quad).price(option)
