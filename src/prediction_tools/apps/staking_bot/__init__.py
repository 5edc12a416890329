"""Multi-stream staking bot for binary-round prediction markets.

Place late-window stakes on PancakeSwap-style UP/DOWN rounds across a
fixed pool of independent streams, each sizing its stakes with a flat or
progressive martingale schedule capped by the wallet bankroll. Real
transactions are signed and sent; there is no paper mode.
"""
