"""sysmon: host telemetry over HTTP/REST and the Model Context Protocol."""

__version__ = "0.1.0"
