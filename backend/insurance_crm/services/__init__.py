"""
Business services.

Services own the rules that span repositories: validation beyond field
shape, activity logging, cache invalidation and third-party calls.
They receive an AsyncSession and leave the commit to the caller.
"""
