"""External services consumed by the convergence engine."""
