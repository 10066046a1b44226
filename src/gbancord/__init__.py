"""
gbancord - Global bans for Discord

gbancord lets a small group of founders ban a user from every server the bot
is in with one command, and lift such a ban only when a second founder
approves it.

Core Components:

- **Gban Engine**: FIFO queue running one gban task at a time; each task walks
  the registered guilds sequentially under the bot's global rate limit and
  reports adaptive progress on the operator's status message
- **Unban Approvals**: two-founder approval workflow with expiring requests
- **Pending Gbans**: bans for users the bot cannot see yet, applied as soon as
  the user shows up in any guild
- **Target Tracking**: guild registration on join, activity tracking on
  messages and periodic removal of inactive guilds

Usage:
    from gbancord.main import main
    main()
"""
