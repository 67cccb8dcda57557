"""Plugin version staging and publication core."""
