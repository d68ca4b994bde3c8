"""Read-side services that shape store contents into API responses."""
