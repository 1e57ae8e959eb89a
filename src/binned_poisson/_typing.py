"""Shared type aliases for the binned_poisson package."""

from collections.abc import Hashable, Sequence

import numpy as np
import pandas as pd

# Numeric sample inputs accepted by the public API.  Missing entries may
# be ``None`` or ``NaN``.
ValuesLike = np.ndarray | pd.Series | Sequence[float | None]

# Category label inputs, aligned row-for-row with the values.
CategoriesLike = np.ndarray | pd.Series | Sequence[Hashable]
