"""
Smart Money Concepts multi-timeframe setup scanner
"""
