"""Report delivery lifecycle: PDF generation, blob upload and email.

Each generated report gets its own ReportDelivery owning one state machine,
which guarantees at most one upload in flight per report artifact.
Failures are captured into the ``error`` state with a message and never
trigger a recomputation of the background-check result.
"""

import logging
import time
from typing import Callable, Optional, Sequence, Union

from statemachine import State, StateMachine

from models import BackgroundCheckReport, UserDetails
from services.mailer import send_report_email
from services.storage import upload_report_pdf
from utils.document_generator import generate_report_pdf, report_file_name


class ReportDeliverySM(StateMachine):
    """Five-state lifecycle of one report artifact.

    States:
        idle       -- Nothing generated yet.
        generating -- PDF being rendered.
        uploading  -- Upload in flight.
        uploaded   -- PDF stored, share link available.
        failed     -- Generation or upload failed (value "error").
    """

    idle = State("idle", initial=True, value="idle")
    generating = State("generating", value="generating")
    uploading = State("uploading", value="uploading")
    uploaded = State("uploaded", value="uploaded")
    failed = State("error", value="error")

    start_generation = idle.to(generating)
    begin_upload = generating.to(uploading)
    complete_upload = uploading.to(uploaded)
    fail = generating.to(failed) | uploading.to(failed)
    retry = failed.to(uploading)
    regenerate = failed.to(generating)
    reset = uploaded.to(idle) | failed.to(idle)


class ReportDelivery:
    def __init__(
        self,
        report: BackgroundCheckReport,
        *,
        renderer: Callable[[BackgroundCheckReport], bytes] = generate_report_pdf,
        uploader: Callable[[bytes, str], str] = upload_report_pdf,
        mailer: Callable[..., dict] = send_report_email,
        clock: Callable[[], float] = time.time,
    ):
        self.report = report
        self.sm = ReportDeliverySM()
        self._renderer = renderer
        self._uploader = uploader
        self._mailer = mailer
        self._clock = clock
        self.pdf_bytes: Optional[bytes] = None
        self.file_name: Optional[str] = None
        self.url: Optional[str] = None
        self.error_message: Optional[str] = None
        self.email_error: Optional[str] = None

    @property
    def state(self) -> str:
        return self.sm.current_state.value

    def _fail(self, message: str, exc: Exception):
        self.error_message = f"{message}: {exc}"
        logging.error(f"[delivery] {self.report.report_id} {self.error_message}")
        self.sm.fail()

    def generate(self) -> Optional[bytes]:
        if self.state == "error":
            self.sm.regenerate()
        else:
            self.sm.start_generation()
        self.error_message = None
        try:
            self.pdf_bytes = self._renderer(self.report)
            self.file_name = report_file_name(self.report, int(self._clock() * 1000))
        except Exception as e:
            self._fail("PDF generation failed", e)
            return None
        return self.pdf_bytes

    def _do_upload(self) -> Optional[str]:
        try:
            self.url = self._uploader(self.pdf_bytes, self.file_name)
        except Exception as e:
            self._fail("Upload failed", e)
            return None
        self.sm.complete_upload()
        logging.info(f"[delivery] {self.report.report_id} uploaded as {self.file_name}")
        return self.url

    def upload(self) -> Optional[str]:
        """Only legal right after generation; a second call raises TransitionNotAllowed."""
        self.sm.begin_upload()
        return self._do_upload()

    def run(self) -> Optional[str]:
        """Generate then upload; returns the share URL or None on failure."""
        if self.generate() is None:
            return None
        return self.upload()

    def retry(self) -> Optional[str]:
        """User-triggered retry from the error state, reusing already generated bytes."""
        if self.pdf_bytes is None:
            return self.run()
        self.sm.retry()
        self.error_message = None
        return self._do_upload()

    def send_email(self, user: UserDetails, recipients: Union[str, Sequence[str]]) -> bool:
        if self.state != "uploaded" or not self.url:
            raise RuntimeError("Report must be uploaded before it can be emailed")
        try:
            self._mailer(user, recipients, self.url)
        except Exception as e:
            self.email_error = str(e)
            logging.error(f"[delivery] {self.report.report_id} email failed: {e}")
            return False
        self.email_error = None
        return True
