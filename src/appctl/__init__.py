"""appctl: control an application server, its helper tools and its build."""

__version__ = "0.1.0"
