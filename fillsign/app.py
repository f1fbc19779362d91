"""
Application entry point.
"""
import logging
import sys

from PyQt5.QtWidgets import QApplication

from fillsign.config import load_settings
from fillsign.ui.main_window import MainWindow
from fillsign.utils.log import configure_logging

logger = logging.getLogger(__name__)


def main():
    """
    Run the Fill & Sign editor.
    An optional PDF path may be passed as the first command-line argument.
    """
    settings = load_settings()
    configure_logging(settings.log_level, to_cache=True)

    app = QApplication(sys.argv)
    app.setApplicationName("FillSign")

    file_path = sys.argv[1] if len(sys.argv) > 1 else None
    window = MainWindow(settings, file_path)
    window.showMaximized()
    logger.info("Fill & Sign started")
    sys.exit(app.exec_())


if __name__ == '__main__':
    main()
