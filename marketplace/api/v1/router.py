"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from marketplace.api.v1 import admin, auth, bookings, listings, messages, realtime, users

api_router = APIRouter()

# Authentication
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])

# Users
api_router.include_router(users.router, prefix="/users", tags=["Users"])

# Listings
api_router.include_router(listings.router, prefix="/listings", tags=["Listings"])
api_router.include_router(messages.threads_router, prefix="/listings", tags=["Messages"])

# Bookings
api_router.include_router(bookings.router, prefix="/bookings", tags=["Bookings"])

# Messages
api_router.include_router(messages.router, prefix="/messages", tags=["Messages"])
api_router.include_router(messages.chats_router, prefix="/chats", tags=["Messages"])

# Admin
api_router.include_router(admin.router, prefix="/admin", tags=["Admin"])

# Real-time notifications
api_router.include_router(realtime.router, tags=["Realtime"])
