"""Forum source: HTTP fetching, response parsing and text extraction."""
