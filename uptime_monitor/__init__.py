from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("validator-uptime-monitor")
except PackageNotFoundError:
    __version__ = "0.0.0"
