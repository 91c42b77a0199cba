"""Entry points that run a framework request handler behind a gateway."""
