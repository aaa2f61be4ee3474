"""
Package: delivery
Description: Event delivery mechanisms for the Amplitude APIs.

Provides payload formatting, the shared HTTP transport, the retry
policy and the realtime, batch and identify drivers.
"""
