import numpy as np
import pandas as pd


def generate_synthetic_prices(symbols, start, end, seed=42, stress_periods=None):
    rng = np.random.default_rng(seed)
    dates = pd.bdate_range(start, end, freq='C')
    n_days = len(dates)
    market = rng.normal(0.0002, 0.008, size=n_days)
    # Market loadings rise sharply inside stress periods so correlations spike
    loading = np.full(n_days, 0.5)
    for stress_start, stress_end in (stress_periods or []):
        mask = (dates >= pd.Timestamp(stress_start)) & (dates <= pd.Timestamp(stress_end))
        loading[mask] = 1.5
        market[mask] *= 2.0
    data = {}
    for i, sym in enumerate(symbols):
        beta = 0.8 + 0.1 * (i % 5)
        idio = rng.normal(0.0, 0.01 + 0.002 * (i % 3), size=n_days)
        shocks = beta * loading * market + idio
        data[sym] = 100 * np.exp(np.cumsum(shocks))
    return pd.DataFrame(data, index=dates)
