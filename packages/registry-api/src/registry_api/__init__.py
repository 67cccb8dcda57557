"""HTTP surface for staging and publishing plugin versions."""
