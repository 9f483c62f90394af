"""Default HTML receipt renderer.

The dispatcher accepts any ``(bill, company) -> str`` callable; this one gives
the A4 layout used by the counter's browser popup.
"""
from __future__ import annotations

from datetime import datetime
from html import escape
from typing import Callable, Optional

from weighbridge.config.settings import CompanySettings
from weighbridge.models.print_job import BillSnapshot, WeightReading
from weighbridge.services.formatting import format_date, format_datetime, format_indian, format_time

DocumentRenderer = Callable[[BillSnapshot, CompanySettings], str]

_STYLE = """
  @page { size: A4 portrait; margin: 10mm; }
  * { box-sizing: border-box; margin: 0; padding: 0; }
  body { font-family: Arial, sans-serif; font-size: 13px; color: #000; width: 190mm; }
  .header { text-align: center; border-bottom: 3px double #000; padding-bottom: 6px; margin-bottom: 8px; }
  .header .logo { max-height: 50px; }
  .header h1 { font-size: 20px; text-transform: uppercase; }
  .header h2 { font-size: 13px; text-transform: uppercase; }
  .meta-row { display: flex; justify-content: space-between; border-bottom: 1.5px solid #000;
              padding: 5px 0; margin-bottom: 8px; font-weight: bold; }
  .cameras { display: flex; gap: 8px; margin-bottom: 10px; }
  .cam-box { flex: 1; border: 1.5px solid #555; background: #e0e0e0; min-height: 100px; position: relative; }
  .cam-box img { width: 100%; height: 100%; object-fit: cover; display: block; }
  .cam-no-image { display: flex; align-items: center; justify-content: center; color: #888; min-height: 90px; }
  .details { display: flex; gap: 16px; }
  .left-col { flex: 1; border: 1.5px solid #000; }
  .left-col table { width: 100%; border-collapse: collapse; }
  .left-col td { padding: 5px 8px; border-bottom: 1px solid #ccc; }
  .left-col td:first-child { font-weight: bold; width: 40%; }
  .weight-boxes { display: flex; border: 2px solid #000; }
  .w-box { flex: 1; text-align: center; border-right: 2px solid #000; padding: 6px 4px; }
  .w-box:last-child { border-right: none; }
  .w-label { font-size: 11px; font-weight: bold; text-transform: uppercase; }
  .w-value { font-size: 17px; font-weight: bold; }
  .w-time { font-size: 9px; color: #444; font-family: monospace; }
  .footer { margin-top: 10px; display: flex; justify-content: space-between; border-top: 1px solid #000;
            padding-top: 8px; font-size: 11px; }
  @media print { .no-print { display: none !important; } }
"""


def _weight_value(value: Optional[float]) -> str:
    return f"{format_indian(value)}-Kg" if value else "--"


def _weight_box(label: str, reading: WeightReading) -> str:
    return (
        '<div class="w-box">'
        f'<div class="w-label">{label}</div>'
        f'<div class="w-value">{_weight_value(reading.value)}</div>'
        f'<div class="w-time">{escape(format_datetime(reading.timestamp))}</div>'
        "</div>"
    )


def _camera_box(src: str, index: int) -> str:
    if not src:
        return f'<div class="cam-box"><div class="cam-no-image">NO CAMERA {index} IMAGE</div></div>'
    return f'<div class="cam-box"><img src="{escape(src, quote=True)}" alt="Camera {index}" /></div>'


def render_receipt_html(bill: BillSnapshot, company: CompanySettings) -> str:
    charges = f"{bill.charges:.2f}" if bill.charges is not None else ""
    logo = f'<img class="logo" src="{escape(company.logo, quote=True)}" alt="Logo" />' if company.logo else ""
    printed = datetime.now().strftime("%d/%m/%Y, %I:%M:%S %p").lower()
    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8"/>
<title>Weigh Bridge Receipt - Bill #{escape(bill.bill_no)}</title>
<style>{_STYLE}</style>
</head>
<body>
<div class="no-print"><button onclick="window.print()">Print This Bill</button>
<button onclick="window.close()">Close</button></div>
<div class="header">
  {logo}
  <h1>{escape(company.name)}</h1>
  <h2>{escape(company.addr1)}</h2>
  <div class="addr">{escape(company.addr2)} &nbsp;&nbsp; {escape(company.phone)}</div>
</div>
<div class="meta-row">
  <span><b>Serial No</b> :- {escape(bill.bill_no)}</span>
  <span><b>Date</b> :- {format_date(bill.date_time)}</span>
  <span><b>Time</b> :- {format_time(bill.date_time)}</span>
</div>
<div class="cameras">
  {_camera_box(bill.camera1_image, 1)}
  {_camera_box(bill.camera2_image, 2)}
</div>
<div class="details">
  <div class="left-col">
    <table>
      <tr><td>Vehicle No</td><td>:- {escape(bill.vehicle_no)}</td></tr>
      <tr><td>Customer Name</td><td>:- {escape(bill.customer)}</td></tr>
      <tr><td>Material</td><td>:- {escape(bill.material)}</td></tr>
      <tr><td>Charge</td><td>:- &#8377; {charges}</td></tr>
    </table>
  </div>
  <div class="weight-boxes">
    {_weight_box("Gross Weight", bill.gross_weight)}
    {_weight_box("Tare Weight", bill.tare_weight)}
    {_weight_box("Net Weight", WeightReading(value=bill.net_weight))}
  </div>
</div>
<div class="footer">
  <div class="generated">Printed: {printed}</div>
  <div class="sign">Authorised Signature</div>
</div>
<script>if (window.opener) {{ setTimeout(function () {{ window.print(); }}, 500); }}</script>
</body>
</html>
"""


__all__ = ["DocumentRenderer", "render_receipt_html"]
