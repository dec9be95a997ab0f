"""Engine-wide infrastructure (database)."""
