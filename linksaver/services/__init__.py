"""Domain services operating on an explicit owner id."""
