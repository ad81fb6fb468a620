"""HTTP layer: routes, auth, middleware, WebSocket progress."""
