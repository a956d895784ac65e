import unittest
import numpy as np
import sys
import os

sys.path.insert(0, os.getcwd())
import pybasket as pb


def two_asset_basket(cor=0.3, intr=0.03, sigma=(0.20, 0.25)):
    assets = [
        pb.Asset("Asset1", 100.0, sigma=sigma[0], divr=0.02),
        pb.Asset("Asset2", 120.0, sigma=sigma[1], divr=0.015),
    ]
    return pb.build_basket(assets, [0.6, 0.4], cor=cor, intr=intr)


class TestBasketMc(unittest.TestCase):
    def test_mc_vs_moment_matching(self):
        basket = two_asset_basket()
        option = pb.BasketOption(basket, "call", strike=basket.value(), texp=1.0)
        p_mm = pb.price_moment_matching(option)

        for seed in [1, 42, 12345]:
            res = pb.price_monte_carlo(option, n_path=100000, seed=seed)
            self.assertEqual(res.n_path, 100000)
            self.assertLess(abs(res.price - p_mm) / p_mm, 0.05)
            self.assertLess(res.std_err, 0.1)
            self.assertAlmostEqual(res.std_err, np.sqrt(res.variance / 100000), places=12)
            self.assertIsNone(res.cv_adjustment)
            self.assertIsNone(res.var_reduction_pct)

    def test_control_variate(self):
        basket = two_asset_basket()
        for kind in ("call", "put"):
            option = pb.BasketOption(basket, kind, strike=basket.value(), texp=1.0)
            p_mm = pb.price_moment_matching(option)

            res = pb.price_monte_carlo(option, n_path=20000, seed=7)
            res_cv = pb.price_monte_carlo(option, n_path=20000, seed=7, control_variate=True)

            self.assertLessEqual(res_cv.std_err, res.std_err)
            self.assertGreaterEqual(res_cv.var_reduction_pct, 0.0)
            self.assertGreater(res_cv.var_reduction_pct, 50.0)
            self.assertIsNotNone(res_cv.cv_beta)
            self.assertAlmostEqual(res_cv.price, res.price + res_cv.cv_adjustment, places=10)
            self.assertLess(abs(res_cv.price - p_mm) / p_mm, 0.05)

    def test_cv_single_asset(self):
        """
        With one asset the control equals the payoff, so the adjusted price is the control expectation
        """
        basket = pb.build_basket([pb.Asset("A", 100.0, 0.2, 0.01)], [1.0], cor=None, intr=0.05)
        option = pb.BasketOption(basket, "call", 100.0, 1.0)
        m = pb.BsmBasketMc(n_path=5000, control_variate=True, rn_seed=3)
        res = m.price(option)

        self.assertAlmostEqual(res.cv_beta, 1.0, places=10)
        self.assertAlmostEqual(res.price, m.cv_expectation(option), places=10)
        self.assertLess(res.std_err, 1e-6)

        p_bsm = pb.Bsm(0.2, intr=0.05, divr=0.01).price(100.0, 100.0, 1.0)
        self.assertAlmostEqual(m.cv_expectation(option), p_bsm, places=8)

    def test_reproducible(self):
        basket = two_asset_basket(intr=[(0.0, 0.02), (1.0, 0.04)], sigma=([(0.0, 0.15), (1.0, 0.25)], 0.25))
        option = pb.BasketOption(basket, "put", strike=110.0, texp=1.0)

        res1 = pb.price_monte_carlo(option, n_path=5000, control_variate=True, seed=11)
        res2 = pb.price_monte_carlo(option, n_path=5000, control_variate=True, seed=11)
        self.assertEqual(res1.to_dict(), res2.to_dict())

        res3 = pb.price_monte_carlo(option, n_path=5000, control_variate=True, rng=np.random.default_rng(11))
        self.assertEqual(res1.to_dict(), res3.to_dict())

        res4 = pb.price_monte_carlo(option, n_path=5000, control_variate=True, seed=12)
        self.assertNotEqual(res1.price, res4.price)

    def test_time_dependent(self):
        basket = two_asset_basket(
            intr=[(0.0, 0.02), (2.0, 0.04)],
            sigma=([(0.0, 0.15), (2.0, 0.3)], [(0.0, 0.3), (2.0, 0.2)]),
        )
        option = pb.BasketOption(basket, "call", strike=110.0, texp=2.0)
        m = pb.BsmBasketMc(n_path=40000, control_variate=True, rn_seed=2024)
        self.assertEqual(m.n_step(2.0), 730)
        self.assertEqual(m.n_step(0.5), 252)

        res = m.price(option)
        p_mm = pb.price_moment_matching(option)
        self.assertLess(abs(res.price - p_mm) / p_mm, 0.05)

    def test_partitioned(self):
        basket = two_asset_basket()
        option = pb.BasketOption(basket, "call", strike=basket.value(), texp=1.0)
        p_mm = pb.price_moment_matching(option)

        res1 = pb.price_monte_carlo_partitioned(option, n_path=40001, n_part=4, seed=5)
        res2 = pb.price_monte_carlo_partitioned(option, n_path=40001, n_part=4, seed=5)
        self.assertEqual(res1.to_dict(), res2.to_dict())
        self.assertEqual(res1.n_path, 40001)
        self.assertLess(abs(res1.price - p_mm) / p_mm, 0.05)

        res_cv = pb.price_monte_carlo_partitioned(option, n_path=40000, n_part=3, seed=5, control_variate=True)
        self.assertLess(abs(res_cv.price - p_mm) / p_mm, 0.05)

    def test_sums_merge(self):
        rng = np.random.default_rng(0)
        xx = rng.uniform(size=1000)
        yy = xx + rng.normal(scale=0.1, size=1000)

        whole = pb.McSums().add(xx, yy)
        part = pb.McSums().add(xx[:300], yy[:300]).merge(pb.McSums().add(xx[300:], yy[300:]))
        self.assertEqual(part.n, whole.n)
        np.testing.assert_allclose(part.mean_var(), whole.mean_var(), rtol=1e-10, atol=1e-14)

    def test_params_kw(self):
        m = pb.BsmBasketMc(n_path=1000, control_variate=True, rn_seed=9, n_batch=200, n_quad=100)
        params = m.params_kw()
        self.assertEqual(
            params, {"n_quad": 100, "n_path": 1000, "control_variate": True, "rn_seed": 9, "n_batch": 200}
        )

        # same parameters give the same pricer
        basket = two_asset_basket()
        option = pb.BasketOption(basket, "call", strike=108.0, texp=1.0)
        self.assertEqual(m.price(option).to_dict(), pb.BsmBasketMc(**params).price(option).to_dict())

    def test_simulate(self):
        basket = two_asset_basket()
        option = pb.BasketOption(basket, "call", strike=108.0, texp=1.0)
        m = pb.BsmBasketMc(n_path=100, rn_seed=1)
        st = m.simulate(option)
        self.assertEqual(st.shape, (100, 2))
        self.assertTrue(np.all(st > 0))

    def test_invalid(self):
        basket = two_asset_basket()
        option = pb.BasketOption(basket, "call", strike=108.0, texp=1.0)
        with self.assertRaises(pb.ValidationError):
            pb.price_monte_carlo(option, n_path=0)
        with self.assertRaises(pb.ValidationError):
            pb.BsmBasketMc(n_path=-10)
        with self.assertRaises(pb.ValidationError):
            pb.BsmBasketMc(n_path=10, n_batch=0)
        with self.assertRaises(pb.ValidationError):
            pb.price_monte_carlo_partitioned(option, n_path=100, n_part=0)

        not_psd = [[1.0, 0.9, -0.9], [0.9, 1.0, 0.9], [-0.9, 0.9, 1.0]]
        assets = [pb.Asset(f"A{i}", 100.0, 0.2) for i in range(3)]
        basket = pb.build_basket(assets, np.ones(3) / 3, cor=not_psd, intr=0.01)
        with self.assertRaises(pb.NumericalError):
            pb.price_monte_carlo(pb.BasketOption(basket, "call", 100.0, 1.0), n_path=10)


if __name__ == "__main__":
    unittest.main()
