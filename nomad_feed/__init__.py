"""Realtime weather and air-quality feed for the nomad city guide."""
