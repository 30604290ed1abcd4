"""Example publishing-company REST API wrapped with GraphWrap."""
