"""Request interception and cache policy engine."""
