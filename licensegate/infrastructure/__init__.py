"""Infrastructure Layer: Contains concrete implementations and adapters.

Timeout guard and retry scheduler, configuration, logging, licensing
providers, the purchase launcher and the console display.
"""
