"""
Raft Cluster Command Router Test Suite

Test suite covering:
- Reply normalization and expectation matching
- Pipelined dispatch on a single node
- Leader redirect chasing and sticky routing
- Startup synchronization and cluster bootstrap
- Batches, configuration and the command line

Network tests run against in-process fake servers (see fake_server.py).
"""
