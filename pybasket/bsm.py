import numpy as np
import scipy.stats as spst


class Bsm:
    """
    Black-Scholes-Merton (BSM) model for a single asset.
    Used as the lognormal pricing kernel of the basket pricers and as the single-asset reference.

    Examples:
        >>> import numpy as np
        >>> import pybasket as pb
        >>> m = pb.Bsm(sigma=0.2, intr=0.05)
        >>> m.price(100, 100, 1.0)
        10.450583572185565
    """

    sigma, intr, divr = None, 0.0, 0.0

    def __init__(self, sigma, intr=0.0, divr=0.0):
        """
        Args:
            sigma: model volatility
            intr: interest rate (domestic interest rate)
            divr: dividend/convenience yield (foreign interest rate)
        """
        self.sigma = sigma
        self.intr = intr
        self.divr = divr

    @staticmethod
    def price_formula(strike, spot, sigma, texp, cp=1, intr=0.0, divr=0.0, is_fwd=False):
        """
        Black-Scholes-Merton model call/put option pricing formula (static method)

        The basket pricers call it with `is_fwd=True` and `intr=0` on the lognormal forward
        (moment-matched M1, or the geometric basket forward) and multiply by the discount factor
        of the rate curve themselves.

        Args:
            strike: strike price
            spot: spot (or forward)
            sigma: model volatility
            texp: time to expiry
            cp: 1/-1 for call/put option
            intr: interest rate (domestic interest rate)
            divr: dividend/convenience yield (foreign interest rate)
            is_fwd: if True, treat `spot` as forward price. False by default.

        Returns:
            Vanilla option price
        """
        disc_fac = np.exp(-texp*intr)
        fwd = np.array(spot)*(1.0 if is_fwd else np.exp(-texp*divr)/disc_fac)

        sigma_std = np.maximum(np.array(sigma)*np.sqrt(texp), np.finfo(float).tiny)

        # don't directly compute d1 just in case sigma_std is infty
        d1 = np.log(fwd/strike)/sigma_std
        d2 = d1 - 0.5*sigma_std
        d1 += 0.5*sigma_std

        cp = np.array(cp)
        price = fwd*spst.norm.cdf(cp*d1) - strike*spst.norm.cdf(cp*d2)
        price *= cp*disc_fac
        return price

    def price(self, strike, spot, texp, cp=1):
        """
        Call/put option price.

        Args:
            strike: strike price.
            spot: spot price.
            texp: time to expiry.
            cp: 1/-1 for call/put option.

        Returns:
            option price
        """
        price = self.price_formula(strike, spot, self.sigma, texp, cp=cp, intr=self.intr, divr=self.divr)
        return float(price) if price.ndim == 0 else price
