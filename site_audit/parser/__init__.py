"""site_audit.parser: HTML and sitemap parsing."""
