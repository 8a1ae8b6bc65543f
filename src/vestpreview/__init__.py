"""Token vesting preview: vesting math, timeline projection and cached on-chain data."""

__version__ = "1.0.0"
