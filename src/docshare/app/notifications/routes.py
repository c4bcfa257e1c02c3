"""Contact form endpoint: POST /contact → relay to the site owner."""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from . import Notifier


class ContactRequest(BaseModel):
    email: str = ''
    message: str = ''


def create_contact_router(notifier: Notifier) -> APIRouter:
    router = APIRouter(tags=['contact'])

    @router.post('/contact')
    async def contact(body: ContactRequest):
        await notifier.send_contact(body.email.strip(), body.message.strip())
        return {'success': True, 'message': 'Message sent successfully'}

    return router
