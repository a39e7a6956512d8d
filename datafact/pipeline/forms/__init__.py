"""Form structure scraping and answer injection."""
