"""Pure domain formulas for plant and battery health. No I/O."""
