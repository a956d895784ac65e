from .errors import ValidationError, NumericalError, UnsupportedVariantError, MomentFloorWarning

# the order is sensitive: entities depend on curves and the correlation engine
from .curve import Curve, as_curve, integrated_cross_variance
from .correlation import CorrMatrix, cholesky, correlated_normals, normals_box_muller
from .basket import Asset, Basket, BasketOption, OptionType, build_basket

from .bsm import Bsm

# Basket pricers
from .multiasset import BsmBasketLevy1992, price_moment_matching
from .multiasset_mc import (
    BsmBasketMc, McResult, McSums,
    price_monte_carlo, price_monte_carlo_partitioned,
)
