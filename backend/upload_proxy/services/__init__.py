from upload_proxy.services.rate_limiter import RateLimiter, RateLimitEntry, get_rate_limiter

__all__ = ["RateLimiter", "RateLimitEntry", "get_rate_limiter"]
