"""
Request-level algorithms: the generate-then-parse factory, the bounded
fan-out harness, and form scraping/injection.
"""
