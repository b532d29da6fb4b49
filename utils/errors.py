class DriveError(Exception):
    """Base exception for service errors rendered as JSON by the app error handler"""
    def __init__(self, message: str, status_code: int = 400, code: str = 'DRIVE_ERROR'):
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(self.message)

    def to_dict(self):
        return {'error': self.message, 'code': self.code}
