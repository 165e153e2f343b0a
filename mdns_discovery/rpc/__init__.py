"""gRPC surface of the discovery handler: messages, servicer, registration."""
