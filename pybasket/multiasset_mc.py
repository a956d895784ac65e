from dataclasses import dataclass, asdict
from typing import Optional
import numpy as np

from . import bsm
from . import basket as bk
from . import opt_abc as opt
from . import correlation as cor
from .errors import ValidationError


@dataclass
class McResult:
    """
    Monte-Carlo price with uncertainty.
    The control variate fields are None if the control variate was not requested.
    If requested but skipped (control variance too small), the adjustment and reduction are 0 and `cv_beta` is None.
    """
    price: float
    std_err: float
    variance: float
    n_path: int
    cv_adjustment: Optional[float] = None
    var_reduction_pct: Optional[float] = None
    cv_beta: Optional[float] = None

    def to_dict(self):
        return asdict(self)


class McSums:
    """
    Running sums of the discounted payoff X and the control Y.
    Partial sums over disjoint sets of paths are merged with `merge` before the statistics are finalized.
    """

    def __init__(self):
        self.n = 0
        self.sum_x = self.sum_xx = 0.0
        self.sum_y = self.sum_yy = self.sum_xy = 0.0

    def add(self, x, y=None):
        """
        Args:
            x: discounted payoffs. (n_path, ) array
            y: control values. (n_path, ) array or None
        """
        self.n += len(x)
        self.sum_x += np.sum(x)
        self.sum_xx += np.sum(x * x)
        if y is not None:
            self.sum_y += np.sum(y)
            self.sum_yy += np.sum(y * y)
            self.sum_xy += np.sum(x * y)
        return self

    def merge(self, other):
        self.n += other.n
        self.sum_x += other.sum_x
        self.sum_xx += other.sum_xx
        self.sum_y += other.sum_y
        self.sum_yy += other.sum_yy
        self.sum_xy += other.sum_xy
        return self

    def mean_var(self):
        """
        Returns:
            (mean of X, variance of X, mean of Y, variance of Y, covariance of X and Y)
        """
        n = self.n
        mean_x = self.sum_x / n
        mean_y = self.sum_y / n
        var_x = max(self.sum_xx / n - mean_x**2, 0.0)
        var_y = self.sum_yy / n - mean_y**2
        cov_xy = self.sum_xy / n - mean_x * mean_y
        return mean_x, var_x, mean_y, var_y, cov_xy


class BsmBasketMc(opt.OptBasketABC):
    """
    Monte-Carlo simulation of basket options under multiasset BSM with deterministic rate/volatility curves.
    Log prices are evolved with the log-Euler scheme on a daily grid, the rate and volatilities being
    read at the start of each step. The Cholesky factor of the (static) correlation matrix is computed once per call.

    The geometric-mean basket option is used as control variate. Its expectation under the same discretized
    dynamics is known in closed form, so the adjusted estimator is unbiased.

    Examples:
        >>> import pybasket as pb
        >>> assets = [pb.Asset("A", 100, sigma=0.2, divr=0.02), pb.Asset("B", 120, sigma=0.25, divr=0.015)]
        >>> basket = pb.build_basket(assets, [0.6, 0.4], cor=0.3, intr=0.03)
        >>> option = pb.BasketOption(basket, "call", strike=basket.value(), texp=1.0)
        >>> m = pb.BsmBasketMc(n_path=100000, control_variate=True, rn_seed=42)
        >>> m.price(option).price
    """

    MIN_STEP = 252
    STEP_PER_YEAR = 365
    CV_MIN_VAR = 1e-10

    # MC params
    n_path = 100000
    n_batch = 50000
    control_variate = False
    rn_seed = None

    def __init__(self, n_path=100000, control_variate=False, rn_seed=None, n_batch=50000, n_quad=None):
        super().__init__(n_quad=n_quad)
        self.set_num_params(n_path=n_path, control_variate=control_variate, rn_seed=rn_seed, n_batch=n_batch)

    def set_num_params(self, n_path=100000, control_variate=False, rn_seed=None, n_batch=50000):
        """
        Set MC parameters

        Args:
            n_path: number of paths
            control_variate: if True, apply the geometric basket control variate
            rn_seed: random number seed
            n_batch: number of paths simulated at once (memory bound)
        """
        if n_path is None or int(n_path) <= 0:
            raise ValidationError(f"Number of simulations must be positive, got {n_path}")
        if int(n_batch) <= 0:
            raise ValidationError(f"Batch size must be positive, got {n_batch}")

        self.n_path = int(n_path)
        self.control_variate = bool(control_variate)
        self.rn_seed = rn_seed
        self.n_batch = int(n_batch)

    def params_kw(self):
        params = super().params_kw()
        params.update(n_path=self.n_path, control_variate=self.control_variate,
                      rn_seed=self.rn_seed, n_batch=self.n_batch)
        return params

    def n_step(self, texp):
        """
        Number of time steps: daily steps with at least 252 steps
        """
        return max(self.MIN_STEP, int(texp * self.STEP_PER_YEAR))

    def _step_params(self, basket, texp):
        """
        Per-step drift and diffusion of the log prices

        Returns:
            (drift, vol_dt) of shape (n_step, n_asset) each, and dt
        """
        n_step = self.n_step(texp)
        dt = texp / n_step
        tt = np.arange(n_step) * dt

        intr = basket.intr.value(tt)
        sigma = np.stack([s.value(tt) for s in basket.sigma], axis=-1)

        drift = (intr[:, None] - basket.divr - 0.5 * sigma**2) * dt
        vol_dt = sigma * np.sqrt(dt)
        return drift, vol_dt, dt

    def _simulate_log(self, basket, drift, vol_dt, chol, n_path, rng):
        """
        Terminal log prices

        Returns:
            (n_path, n_asset) array
        """
        log_s = np.broadcast_to(np.log(basket.spot), (n_path, basket.n_asset)).copy()
        for k in range(drift.shape[0]):
            zz = cor.correlated_normals(chol, cor.normals_box_muller(rng, (n_path, basket.n_asset)))
            log_s += drift[k] + vol_dt[k] * zz
        return log_s

    def simulate(self, option, n_path=None, rng=None):
        """
        Simulate the asset prices at expiry.

        Args:
            option: BasketOption
            n_path: number of paths. `self.n_path` if None
            rng: numpy.random.Generator. If None, a new generator is created from `rn_seed`

        Returns:
            terminal prices (n_path, n_asset)
        """
        basket = option.basket
        rng = np.random.default_rng(self.rn_seed) if rng is None else rng
        drift, vol_dt, _ = self._step_params(basket, option.texp)
        log_s = self._simulate_log(basket, drift, vol_dt, basket.cor.cholesky(),
                                   self.n_path if n_path is None else int(n_path), rng)
        return np.exp(log_s)

    def cv_expectation(self, option):
        """
        Expected discounted payoff of the geometric-mean basket option (control variate)
        under the discretized dynamics of the simulation.

        Args:
            option: BasketOption

        Returns:
            expectation of the control
        """
        basket = option.basket
        texp = option.texp
        weight = basket.weight
        drift, vol_dt, _ = self._step_params(basket, texp)
        df = basket.intr.discount_factor(texp, n_step=self.n_quad)

        log_mean = weight @ (np.log(basket.spot) + np.sum(drift, axis=0))
        cov_m = np.asarray(basket.cor) * (vol_dt.T @ vol_dt)
        var = weight @ cov_m @ weight

        if var <= 0.0:
            return float(df * bk.payoff(np.exp(log_mean), option.strike, option.kind))

        fwd_geo = np.exp(log_mean + 0.5 * var)
        price = bsm.Bsm.price_formula(option.strike, fwd_geo, np.sqrt(var / texp), texp, cp=option.cp, is_fwd=True)
        return float(df * price)

    def mc_sums(self, option, n_path, rng, control_variate=None):
        """
        Simulate `n_path` paths in batches and accumulate the sums of discounted payoffs (and controls).

        Args:
            option: BasketOption
            n_path: number of paths
            rng: numpy.random.Generator used for all the draws
            control_variate: if None, `self.control_variate`

        Returns:
            McSums
        """
        if control_variate is None:
            control_variate = self.control_variate

        basket = option.basket
        texp = option.texp
        drift, vol_dt, _ = self._step_params(basket, texp)
        chol = basket.cor.cholesky()
        df = basket.intr.discount_factor(texp, n_step=self.n_quad)

        sums = McSums()
        n_done = 0
        while n_done < n_path:
            n_batch = min(self.n_batch, n_path - n_done)
            log_s = self._simulate_log(basket, drift, vol_dt, chol, n_batch, rng)

            pay = df * option.payoff(np.exp(log_s) @ basket.weight)
            ctrl = df * option.payoff(np.exp(log_s @ basket.weight)) if control_variate else None
            sums.add(pay, ctrl)
            n_done += n_batch

        return sums

    def finalize(self, option, sums, control_variate=None):
        """
        Price, variance and standard error from the accumulated sums, with the control variate adjustment.

        Args:
            option: BasketOption
            sums: McSums
            control_variate: if None, `self.control_variate`

        Returns:
            McResult
        """
        if control_variate is None:
            control_variate = self.control_variate

        n = sums.n
        mean_x, var_x, mean_y, var_y, cov_xy = sums.mean_var()
        result = McResult(price=float(mean_x), std_err=float(np.sqrt(var_x / n)), variance=float(var_x), n_path=n)

        if control_variate:
            result.cv_adjustment = 0.0
            result.var_reduction_pct = 0.0
            if var_y > self.CV_MIN_VAR:
                beta = cov_xy / var_y
                var_red = beta**2 * var_y
                adj = -beta * (mean_y - self.cv_expectation(option))

                result.cv_beta = float(beta)
                result.cv_adjustment = float(adj)
                result.price = float(mean_x + adj)
                result.var_reduction_pct = float(max(100.0 * var_red / var_x, 0.0)) if var_x > 0.0 else 0.0
                result.variance = float(max(var_x - var_red, 0.0))
                result.std_err = float(np.sqrt(result.variance / n))

        return result

    def price(self, option, rng=None):
        """
        Monte-Carlo price of the basket option

        Args:
            option: BasketOption
            rng: numpy.random.Generator. If None, a new generator is created from `rn_seed`

        Returns:
            McResult
        """
        if not option.texp > 0.0:
            raise ValidationError(f"Maturity must be positive, got {option.texp}")
        rng = np.random.default_rng(self.rn_seed) if rng is None else rng
        sums = self.mc_sums(option, self.n_path, rng)
        return self.finalize(option, sums)

    def price_partitioned(self, option, n_part):
        """
        Monte-Carlo price with the paths split into `n_part` partitions, each with an independent random
        stream spawned from `rn_seed`. The partial sums are merged before the statistics are finalized.
        Each partition is independent and may be simulated by a separate worker.

        Args:
            option: BasketOption
            n_part: number of partitions

        Returns:
            McResult
        """
        n_part = int(n_part)
        if n_part <= 0:
            raise ValidationError(f"Number of partitions must be positive, got {n_part}")
        if not option.texp > 0.0:
            raise ValidationError(f"Maturity must be positive, got {option.texp}")

        seed_seq = np.random.SeedSequence(self.rn_seed)
        n_paths = [self.n_path // n_part + (1 if k < self.n_path % n_part else 0) for k in range(n_part)]

        sums = McSums()
        for s, n_path in zip(seed_seq.spawn(n_part), n_paths):
            if n_path > 0:
                sums.merge(self.mc_sums(option, n_path, np.random.default_rng(s)))
        return self.finalize(option, sums)


def price_monte_carlo(option, n_path=100000, control_variate=False, seed=42, rng=None):
    """
    Monte-Carlo price of the basket option

    Args:
        option: BasketOption
        n_path: number of simulations
        control_variate: if True, apply the geometric basket control variate
        seed: random number seed
        rng: numpy.random.Generator. If given, used instead of `seed`

    Returns:
        McResult
    """
    m = BsmBasketMc(n_path=n_path, control_variate=control_variate, rn_seed=seed)
    return m.price(option, rng=rng)


def price_monte_carlo_partitioned(option, n_path=100000, n_part=4, control_variate=False, seed=42):
    """
    Monte-Carlo price with independently seeded partitions. See `BsmBasketMc.price_partitioned`.
    """
    m = BsmBasketMc(n_path=n_path, control_variate=control_variate, rn_seed=seed)
    return m.price_partitioned(option, n_part)
