"""HTTP surface: callback routers and request dependencies."""
