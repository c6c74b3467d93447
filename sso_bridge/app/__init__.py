"""
SSO Bridge
==========

Carries a user who is signed in to the source application over to a target
application through a signed, short-lived token passed in a redirect URL.
The target verifies the token on its own with a shared secret; there is no
shared database and no backend call between the two.
"""

__version__ = "1.0.0"
