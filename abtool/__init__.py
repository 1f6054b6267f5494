"""
abtool: repackage Android APKs and App Bundles.

Decodes an application artifact, recompiles its resources, reassembles a new
APK or AAB and signs it, driving the Android build tools as subprocesses.
"""

__version__ = "0.1.0"
__author__ = "abtool maintainers"
