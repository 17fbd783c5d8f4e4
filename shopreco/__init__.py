"""Session-scoped preference tracking and product recommendations."""
