"""Engine services and the pure calculators they wrap."""
