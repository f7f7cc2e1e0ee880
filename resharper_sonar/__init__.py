"""Import ReSharper inspectcode reports as SonarQube-style violations."""

__version__ = "0.3.0"
