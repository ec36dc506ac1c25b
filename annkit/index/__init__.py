"""Handle lifecycle, marshalling and batch query dispatch."""
