"""flowscope core — decoding, fetching, termination, and the poll loop."""
