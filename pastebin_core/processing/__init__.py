"""Request admission and limit enforcement."""

from .limits_policy import LimitsPolicy, drafts_from
from .rate_limiter import Admit, RateLimiter

__all__ = ["Admit", "LimitsPolicy", "RateLimiter", "drafts_from"]
