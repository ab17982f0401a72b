"""Client for the Miniflux feed reader REST API."""
