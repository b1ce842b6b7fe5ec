"""Builders for Envoy v3 resources: clusters, endpoints, routes, virtual hosts and connection managers."""