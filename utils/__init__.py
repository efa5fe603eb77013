"""
Utility package setup.

Enables pandas Copy-on-Write globally so the dataset and result frames are
never duplicated implicitly. From pandas 3 it is the only mode and the option
is deprecated, so it is set on older releases only.
"""

import pandas as pd

PANDAS_MAJOR = int(pd.__version__.split('.')[0])

if PANDAS_MAJOR < 3:
    pd.options.mode.copy_on_write = True
