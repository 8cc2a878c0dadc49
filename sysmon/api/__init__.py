"""HTTP transport: REST sugar, raw JSON-RPC and the SSE heartbeat."""
