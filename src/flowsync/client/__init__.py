"""flowsync client components."""
