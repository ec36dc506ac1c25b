"""Engine layer: ports and the adapters that implement them."""
