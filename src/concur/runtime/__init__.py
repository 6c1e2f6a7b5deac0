"""Runtime - concurrency primitives and observability."""
