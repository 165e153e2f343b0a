"""mDNS discovery handler package.

Browses the local network for mDNS services matching a configured service
name and streams the currently known set of matching devices to an
orchestration agent over gRPC.
"""
