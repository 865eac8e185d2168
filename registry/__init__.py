"""Registry application for the blood bank backend.

Off-chain record models, their REST routes, and the wallet session
manager that binds the BloodDonation contract to a connected account.
"""
