"""Authentication: session tokens, password hashing, request gating.

Learn: Two ways to end up with a session token:
1. Email/password → AccountService.register / login
2. Google sign-in → OAuthService.complete_login

Both terminate in TokenService.issue, and every protected route resolves
the bearer token back to a live Account through AccountService.verify.
"""
