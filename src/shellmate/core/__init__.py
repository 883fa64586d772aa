"""Core request pipeline."""
