"""ServerCozy — provision a bare server with tools, prompt, aliases and editor defaults."""

__version__ = "1.9.3"
