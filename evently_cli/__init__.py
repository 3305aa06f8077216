"""
Evently CLI - Command-line interface for the Evently client.

Commands:
- register / login / logout / whoami: Manage the account and local session
- config: Show and update client configuration
- events: Browse events and list the ones you joined
- event: Check eligibility, join, leave and pay for one event
- notifications: Read and manage notifications
"""
