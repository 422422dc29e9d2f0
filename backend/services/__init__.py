"""Services: tally cache, season finalization, snapshot hashing."""
