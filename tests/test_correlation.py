import unittest
import numpy as np
import sys
import os

sys.path.insert(0, os.getcwd())
import pybasket as pb


class TestCorrelation(unittest.TestCase):
    @staticmethod
    def random_cor(rng, n):
        aa = rng.normal(size=(n, n + 2))
        cov = aa @ aa.T
        std = np.sqrt(np.diag(cov))
        cor = cov / std / std[:, None]
        np.fill_diagonal(cor, 1.0)
        return cor

    def test_cholesky_round_trip(self):
        rng = np.random.default_rng(1234)
        for n in range(1, 8):
            cor = self.random_cor(rng, n)
            chol = pb.cholesky(cor)
            np.testing.assert_array_equal(chol, np.tril(chol))
            np.testing.assert_allclose(chol @ chol.T, cor, atol=1e-9)
            np.testing.assert_allclose(chol, np.linalg.cholesky(cor), atol=1e-9)

    def test_cholesky_singular_psd(self):
        cor = np.ones((2, 2))
        chol = pb.cholesky(cor)
        np.testing.assert_allclose(chol, [[1.0, 0.0], [1.0, 0.0]])
        np.testing.assert_allclose(chol @ chol.T, cor, atol=1e-9)

    def test_cholesky_not_psd(self):
        cor = np.array([[1.0, 0.9, -0.9], [0.9, 1.0, 0.9], [-0.9, 0.9, 1.0]])
        m = pb.CorrMatrix(cor)  # passes the entry-wise validation
        with self.assertRaises(pb.NumericalError):
            m.cholesky()

    def test_corr_matrix(self):
        m = pb.CorrMatrix(0.3, n_asset=3)
        self.assertEqual(m.n, 3)
        self.assertEqual(m[0, 1], 0.3)
        self.assertEqual(m[2, 2], 1.0)
        with self.assertRaises(IndexError):
            m[3, 0]
        with self.assertRaises(IndexError):
            m[-1, 0]

        arr = m.to_array()
        arr[0, 1] = 0.9
        self.assertEqual(m[0, 1], 0.3)

    def test_corr_matrix_invalid(self):
        with self.assertRaises(pb.ValidationError):
            pb.CorrMatrix(np.ones((2, 3)))
        with self.assertRaises(pb.ValidationError):
            pb.CorrMatrix([[1.0, 0.3], [0.2, 1.0]])
        with self.assertRaises(pb.ValidationError):
            pb.CorrMatrix([[1.0, 0.3], [0.3, 0.9]])
        with self.assertRaises(pb.ValidationError):
            pb.CorrMatrix([[1.0, 1.5], [1.5, 1.0]])
        with self.assertRaises(pb.ValidationError):
            pb.CorrMatrix([[1.0, 1.0], [1.0 + 5e-7, 1.0]])
        with self.assertRaises(pb.ValidationError):
            pb.CorrMatrix([[1.0, -1.0], [-1.0 - 5e-7, 1.0]])
        with self.assertRaises(pb.ValidationError):
            pb.CorrMatrix(0.5)
        with self.assertRaises(pb.ValidationError):
            pb.CorrMatrix(np.eye(3), n_asset=2)

    def test_box_muller(self):
        z1 = pb.normals_box_muller(np.random.default_rng(42), 200000)
        z2 = pb.normals_box_muller(np.random.default_rng(42), 200000)
        np.testing.assert_array_equal(z1, z2)
        self.assertLess(abs(np.mean(z1)), 0.01)
        self.assertLess(abs(np.var(z1) - 1.0), 0.02)

    def test_correlated_normals(self):
        chol = pb.CorrMatrix(0.3, n_asset=2).cholesky()
        zz = pb.normals_box_muller(np.random.default_rng(7), (200000, 2))
        xx = pb.correlated_normals(chol, zz)
        self.assertEqual(xx.shape, zz.shape)
        self.assertLess(abs(np.corrcoef(xx.T)[0, 1] - 0.3), 0.01)

        # single vector
        np.testing.assert_allclose(pb.correlated_normals(chol, zz[0]), chol @ zz[0])


if __name__ == "__main__":
    unittest.main()
