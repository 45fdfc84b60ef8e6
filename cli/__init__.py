"""CLI package — click commands and Rich rendering helpers."""
