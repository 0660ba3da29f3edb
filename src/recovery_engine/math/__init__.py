"""Pure numeric reductions over training history. No I/O, no logging."""
