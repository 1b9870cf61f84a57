"""
Constants shared by the latent model, the response sampler and the
data generation layer.
"""

# Response families with a single (two-category) outcome parameter
BINARY_FAMILIES = ("bernoulli", "beta", "gaussian")
ORDINAL_FAMILIES = ("cumulative",)
FAMILIES = BINARY_FAMILIES + ORDINAL_FAMILIES

COMB_BLOCKS = ("random", "fixed")

# Beta responses are truncated to this interval
BETA_RESPONSE_MIN = 0.001
BETA_RESPONSE_MAX = 0.999
DEFAULT_BETA_DISPERSION = 20.0

# Budgets for the random balanced block search
DEFAULT_MAX_TRIES_OUTER = 20
DEFAULT_MAX_TRIES_INNER = 1_000_000
