"""Bondly: two partners, two perspectives, personalized advice."""
