"""
Package: config
Description: Settings for the delivery client.
"""
