"""proxyfleet: client-side model of a proxy engine's nodes, groups and providers."""
