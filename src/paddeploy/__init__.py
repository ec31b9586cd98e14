"""pad-deploy — dependency-ordered provisioning of the PAD Pack contracts."""

__version__ = "0.1.0"
