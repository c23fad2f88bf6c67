"""External collaborators (catalog, sheets, crosssell, scraper, AI) and run services."""
