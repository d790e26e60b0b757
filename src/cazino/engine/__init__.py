"""Pure betting engine: parimutuel math, rule validation, visibility."""
