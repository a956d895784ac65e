import numpy as np
from .errors import ValidationError, NumericalError


class CorrMatrix:
    """
    Dense n x n correlation matrix validated at construction:
    square, symmetric, unit diagonal and entries in [-1, 1].

    Examples:
        >>> import pybasket as pb
        >>> cor = pb.CorrMatrix(0.3, n_asset=3)
        >>> cor[0, 1], cor[2, 2]
        (0.3, 1.0)
    """

    TOL = 1e-6

    def __init__(self, cor, n_asset=None):
        """
        Args:
            cor: correlation. If matrix with shape (n_asset, n_asset), used as it is.
                If scalar, correlation matrix is constructed with all same off-diagonal values.
            n_asset: number of assets. Required if `cor` is scalar.
        """
        if np.isscalar(cor):
            if n_asset is None:
                raise ValidationError("n_asset is required for a scalar correlation")
            cor_m = np.full((n_asset, n_asset), float(cor))
            np.fill_diagonal(cor_m, 1.0)
        else:
            cor_m = np.array(cor, dtype=float)

        self._validate(cor_m)
        if n_asset is not None and cor_m.shape[0] != n_asset:
            raise ValidationError(f"Correlation matrix must be {n_asset}x{n_asset}, got {cor_m.shape}")

        self._cor_m = cor_m
        self._cor_m.flags.writeable = False

    @classmethod
    def _validate(cls, cor_m):
        if cor_m.ndim != 2 or cor_m.shape[0] != cor_m.shape[1] or cor_m.shape[0] == 0:
            raise ValidationError(f"Correlation matrix must be non-empty and square, got shape {cor_m.shape}")
        if not np.all(np.isfinite(cor_m)):
            raise ValidationError("Correlation matrix has non-finite entries")

        n = cor_m.shape[0]
        for i in range(n):
            if abs(cor_m[i, i] - 1.0) > cls.TOL:
                raise ValidationError(f"Diagonal correlation [{i},{i}] must be 1, got {cor_m[i, i]}")
            for j in range(i + 1, n):
                if abs(cor_m[i, j] - cor_m[j, i]) > cls.TOL:
                    raise ValidationError(f"Correlation matrix must be symmetric at [{i},{j}]")
                for k, l in ((i, j), (j, i)):
                    if abs(cor_m[k, l]) > 1.0:
                        raise ValidationError(f"Correlation [{k},{l}]={cor_m[k, l]} must be between -1 and 1")

    @property
    def n(self):
        return self._cor_m.shape[0]

    @property
    def shape(self):
        return self._cor_m.shape

    def __getitem__(self, ij):
        i, j = ij
        n = self.n
        if not (0 <= i < n and 0 <= j < n):
            raise IndexError(f"Index ({i}, {j}) out of range for {n}x{n} correlation matrix")
        return float(self._cor_m[i, j])

    def __array__(self, dtype=None, copy=None):
        return np.array(self._cor_m, dtype=dtype)

    def to_array(self):
        """
        Copy of the matrix as numpy array
        """
        return self._cor_m.copy()

    def cholesky(self):
        return cholesky(self._cor_m)

    def __repr__(self):
        return f"CorrMatrix({self._cor_m.tolist()})"


def cholesky(matrix, tol=1e-12):
    """
    Cholesky factorization L with L L^T = matrix by the sequential (Cholesky-Banachiewicz) formula.
    The residual variance on the diagonal must not be negative beyond the rounding tolerance.

    Args:
        matrix: symmetric positive semi-definite matrix. (n, n) array
        tol: rounding tolerance for the residual variance and the pivot

    Returns:
        lower triangular matrix. (n, n) array

    Raises:
        NumericalError: if the matrix is not positive semi-definite
    """
    mat = np.array(matrix, dtype=float)
    n = mat.shape[0]
    chol = np.zeros((n, n))

    for i in range(n):
        for j in range(i + 1):
            s = np.dot(chol[i, :j], chol[j, :j])
            if i == j:
                resid = mat[i, i] - s
                if resid < -tol:
                    raise NumericalError(
                        f"Matrix is not positive semi-definite: negative residual variance {resid:g} at [{i},{i}]")
                chol[i, i] = np.sqrt(max(resid, 0.0))
            else:
                num = mat[i, j] - s
                if chol[j, j] > tol:
                    chol[i, j] = num / chol[j, j]
                elif abs(num) > tol:
                    raise NumericalError(
                        f"Matrix is not positive semi-definite: zero pivot at [{j},{j}] with covariance {num:g}")
                # degenerate column: entry stays 0

    return chol


def correlated_normals(chol, z):
    """
    Correlated normals from independent standard normals

    Args:
        chol: lower triangular Cholesky factor. (n_asset, n_asset) array
        z: independent standard normals with the asset dimension last, e.g., (n_asset, ) or (n_path, n_asset)

    Returns:
        correlated normals with the same shape as z
    """
    return np.dot(z, np.asarray(chol).T)


def normals_box_muller(rng, size):
    """
    Standard normal random numbers by the Box-Muller transform of two uniform(0, 1) draws.
    Both uniforms are taken from the same generator so that a fixed seed reproduces the draws.

    Args:
        rng: numpy.random.Generator
        size: output shape

    Returns:
        standard normals
    """
    u1 = 1.0 - rng.random(size)  # (0, 1]
    u2 = rng.random(size)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)
