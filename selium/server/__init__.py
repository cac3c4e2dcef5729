"""The message broker: topics, fan-out sinks, TLS setup and the server entry point."""