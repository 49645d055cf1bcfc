"""Business logic behind the API routes."""
