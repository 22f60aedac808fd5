"""Cozy Defense simulation engine."""
