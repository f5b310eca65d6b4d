

__all__ = ["__version__"]

# Derive the package version from installed distribution metadata when
# available. The core version doubles as the plugin compatibility target, so
# a bare source checkout reports the current release line.
try:
	from importlib.metadata import version, PackageNotFoundError
	try:
		__version__ = version("erpia-core")
	except PackageNotFoundError:
		__version__ = "2025.1"
except Exception:
	__version__ = "2025.1"
