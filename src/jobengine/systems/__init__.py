"""Pure assignment logic: scoring, roles, quotas, health, survival, idle."""
