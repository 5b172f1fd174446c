"""Sylectus email fixtures shared by the test modules."""

SAMPLE_SUBJECT = (
    "VAN needed from Columbus, OH to Dayton, OH 75 miles 0 lbs "
    "Bid on Order #85174 Posted by Acme (broker@acme.com)"
)

SAMPLE_HTML = """
<html><body>
<div class='leginfo'>
  <p>Pick-Up</p>
  <p>Columbus, OH 43215</p>
  <p>01/30/26 08:00 EST</p>
</div>
<div class='leginfo'>
  <p>Delivery</p>
  <p>Dayton, OH 45402</p>
  <p>ASAP</p>
</div>
<table>
  <tr><td><strong>Broker Name:</strong></td><td>John Smith</td></tr>
  <tr><td><strong>Broker Company:</strong></td><td>Acme Logistics</td></tr>
  <tr><td><strong>Broker Phone:</strong></td><td>(614) 555-0100</td></tr>
  <tr><td><strong>Posted Amount:</strong></td><td>$500</td></tr>
  <tr><td><strong>Rate:</strong></td><td>$2.10</td></tr>
  <tr><td><strong>Load Type:</strong></td><td>Expedited</td></tr>
  <tr><td><strong>Pieces:</strong></td><td>2</td></tr>
  <tr><td><strong>Dimensions:</strong></td><td>48L x 40W x 48H</td></tr>
  <tr><td><strong>Dock Level:</strong></td><td>Yes</td></tr>
  <tr><td><strong>Hazmat:</strong></td><td>No</td></tr>
  <tr><td><strong>Stackable:</strong></td><td>No</td></tr>
  <tr><td><strong>Posted:</strong></td><td>01/30/26 07:15 EST</td></tr>
  <tr><td><strong>Expires:</strong></td><td>01/30/26 11:00 PM EST</td></tr>
</table>
<div class='notes-section'><p>Call before arrival</p><p>No touch freight</p></div>
</body></html>
"""

COLUMBUS = {"lat": 39.9612, "lng": -82.9988}
