"""Default values for the feed and printer configuration."""

DEFAULT_SERIAL_PORT = "/dev/ttyUSB0"
DEFAULT_BAUD_RATE = 9600

DEFAULT_PRINTER_TYPE = "local"
DEFAULT_PRINTER_IP = "192.168.1.200"
# RAW/JetDirect
DEFAULT_PRINTER_PORT = 9100
DEFAULT_PAPER_WIDTH_MM = 210
DEFAULT_PDF_ENGINE = "wkhtmltopdf"

DEFAULT_COMPANY_NAME = "SRI VENKADESWARA WEIGH BRIDGE"
DEFAULT_COMPANY_ADDR1 = "CHENNAI-THIRUVANAMALAI BYEPASS ROAD"
DEFAULT_COMPANY_ADDR2 = "NEAR BY SANDHAI MEDU . THINDIVANAM - 604 001"
DEFAULT_COMPANY_PHONE = "Ph : 9994706523 . 9543389898"

DEFAULT_HTTP_HOST = "0.0.0.0"
DEFAULT_HTTP_PORT = 3001
