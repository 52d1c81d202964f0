"""
Strike Distance Trading Bot

Trades Polymarket 15-minute "Bitcoin Up or Down" markets by comparing the
live BTC price with the market's strike.

Entry point: python -m strikebot.main (or the `strikebot` console script)

Key Modules:
- strikebot.signals: Binance reference price tracker and trend
- strikebot.strategies: Strike distance decision engine
- strikebot.execution: Execution gateway, position ledger, paired trades
- strikebot.risk: Entry limits and staged exits
- strikebot.bot: Coordinator that owns the ledger
"""
