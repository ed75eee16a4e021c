# ==============================================================================
# SERVICIO DE CONSULTAS
# ==============================================================================

from typing import Any, Dict, List

from order_desk.models import Inquiry
from order_desk.repositories.inquiry_repository import InquiryRepository


class InquiryService:
    """Consultas del formulario público (siempre nacen en 'pending')."""

    MAX_MESSAGE_LENGTH = 2000

    def __init__(self, inquiry_repo: InquiryRepository):
        self.inquiry_repo = inquiry_repo

    def create_inquiry(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        message = str(payload.get('message') or '').strip()
        if not message:
            return {'ok': False, 'error': 'El mensaje es requerido'}
        if len(message) > self.MAX_MESSAGE_LENGTH:
            return {'ok': False, 'error': f'El mensaje supera {self.MAX_MESSAGE_LENGTH} caracteres'}
        inquiry = Inquiry(id=self.inquiry_repo.next_id(), message=message)
        self.inquiry_repo.add_inquiry(inquiry.to_dict())
        return {'ok': True, 'inquiry': inquiry.to_dict()}

    def list_inquiries(self) -> List[Dict[str, Any]]:
        return [Inquiry.from_dict(i).to_dict() for i in self.inquiry_repo.load()]
