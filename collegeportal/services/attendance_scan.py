import base64
import io
import logging
from dataclasses import dataclass
from enum import Enum

import cv2
import numpy as np
import qrcode

from collegeportal.api import ApiError, HttpError
from collegeportal.api.client import extract_message

log = logging.getLogger(__name__)

MISSING_AUTH = 'Auth token missing. Please sign in again.'
SCAN_FAILED = 'Failed to record attendance. Try again.'
CHECKED_IN = 'Checked in! Your attendance has been recorded as present.'
POINT_CAMERA = 'Point your camera at the QR code…'


class ScanStatus(str, Enum):
    IDLE = 'idle'
    SCANNING = 'scanning'
    SUBMITTING = 'submitting'
    SUCCESS = 'success'
    ERROR = 'error'


@dataclass
class ScanOutcome:
    status: ScanStatus
    message: str
    record: object = None

    def as_dict(self):
        return {
            'success': self.status is ScanStatus.SUCCESS,
            'status': self.status.value,
            'message': self.message,
            'record': self.record.model_dump(mode='json') if self.record is not None else None,
        }


def decode_frame(image_data):
    """Decode a base64 image (optionally a ``data:`` URL) into a BGR array."""
    if ',' in image_data:
        image_data = image_data.split(',', 1)[1]
    raw = base64.b64decode(image_data)
    img = cv2.imdecode(np.frombuffer(raw, dtype=np.uint8), cv2.IMREAD_COLOR)
    if img is None:
        raise ValueError('Could not decode image')
    return img


def read_qr_token(img):
    value, _points, _ = cv2.QRCodeDetector().detectAndDecode(img)
    return value or None


def submit_token(api, qr_token):
    if not api.token:
        return ScanOutcome(ScanStatus.ERROR, MISSING_AUTH)
    try:
        record = api.scan_attendance(qr_token)
    except HttpError as exc:
        return ScanOutcome(ScanStatus.ERROR, extract_message(exc.payload, SCAN_FAILED))
    except ApiError as exc:
        return ScanOutcome(ScanStatus.ERROR, exc.message)
    return ScanOutcome(ScanStatus.SUCCESS, CHECKED_IN, record)


def scan_frame(api, image_data):
    """Look for a QR code in one camera frame and submit it when found."""
    if not api.token:
        return ScanOutcome(ScanStatus.ERROR, MISSING_AUTH)
    try:
        img = decode_frame(image_data)
    except (ValueError, TypeError) as exc:
        log.debug('Unreadable frame: %s', exc)
        return ScanOutcome(ScanStatus.SCANNING, POINT_CAMERA)
    qr_token = read_qr_token(img)
    if not qr_token:
        return ScanOutcome(ScanStatus.SCANNING, POINT_CAMERA)
    return submit_token(api, qr_token)


def qr_png(data):
    qr = qrcode.QRCode(version=1, box_size=10, border=4)
    qr.add_data(data)
    qr.make(fit=True)
    img = qr.make_image(fill_color='black', back_color='white')
    buf = io.BytesIO()
    img.save(buf)
    buf.seek(0)
    return buf
