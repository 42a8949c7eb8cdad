"""Infrastructure layer: persistence of taxpayer records."""
