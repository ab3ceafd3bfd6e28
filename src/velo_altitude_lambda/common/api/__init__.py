"""HTTP-facing building blocks: resolver, request handler and response envelope."""
