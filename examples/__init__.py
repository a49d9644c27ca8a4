"""
Cluster Router Examples

Scripts showing the router against a running cluster:
- Leader discovery through redirects
- Pipelining and expectation checks
"""
