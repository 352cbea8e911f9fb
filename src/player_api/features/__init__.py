"""Feature packages (router + schemas + service per domain area)."""
