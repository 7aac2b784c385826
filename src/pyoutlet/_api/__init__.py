"""Internal request modules."""
