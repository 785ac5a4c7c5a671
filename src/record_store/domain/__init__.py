"""Domain layer - records, conditions and the services built on them."""
