"""Pure domain types for the expense kernel.  ZERO I/O."""
