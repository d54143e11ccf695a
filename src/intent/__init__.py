"""Intent detection.

The intent layer turns a Vietnamese natural-language request into typed tokens and a scored
`DetectedIntent`, which the formula builder then resolves into a concrete formula.
"""
