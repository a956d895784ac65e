import abc
import numpy as np
from . import curve as cv


class OptBasketABC(abc.ABC):
    """
    Abstract class of basket option pricers.
    Model parameters (spots, volatilities, rate) come from the option's basket;
    the pricer only holds numerical parameters.
    """

    n_quad = cv.Curve.N_STEP

    def __init__(self, n_quad=None):
        """
        Args:
            n_quad: number of trapezoidal steps for the time integrals of rate/volatility curves
        """
        if n_quad is not None:
            self.n_quad = int(n_quad)

    def params_kw(self):
        """
        Numerical parameters in dictionary
        """
        return {"n_quad": self.n_quad}

    def forward(self, basket, texp):
        """
        Forward prices of the basket components

        Args:
            basket: Basket
            texp: time to expiry

        Returns:
            forward prices. (n_asset, ) array
        """
        fwd, _ = self._fwd_factor(basket, texp)
        return fwd

    def _fwd_factor(self, basket, texp):
        """
        Forward prices and discount factor

        Args:
            basket: Basket
            texp: time to expiry

        Returns:
            (forward, discounting factor)
        """
        intr_int = basket.intr.integrate(texp, n_step=self.n_quad)
        df = np.exp(-intr_int)
        fwd = basket.spot * np.exp(intr_int - basket.divr * texp)
        return fwd, df

    def _cov_int(self, basket, texp):
        """
        Integrated covariance matrix, rho_ij * int_0^T sigma_i(s) sigma_j(s) ds

        Args:
            basket: Basket
            texp: time to expiry

        Returns:
            (n_asset, n_asset) array
        """
        sigma = basket.sigma
        n = basket.n_asset
        vol_int = np.zeros((n, n))
        for i in range(n):
            for j in range(i, n):
                vol_int[i, j] = cv.integrated_cross_variance(sigma[i], sigma[j], texp, n_step=self.n_quad)
                vol_int[j, i] = vol_int[i, j]
        return np.asarray(basket.cor) * vol_int

    @abc.abstractmethod
    def price(self, option):
        """
        Basket option price.

        Args:
            option: BasketOption

        Returns:
            option price
        """
        return NotImplementedError
