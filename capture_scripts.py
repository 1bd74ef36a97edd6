# capture_scripts.py
# PowerShell/.NET scripts generated per call for the script capture backend

MONITOR_RECORD_SEPARATOR = '|'
PRIMARY_FLAG = 'PRIMARY'

# Without DPI awareness .NET reports scaled bounds on high-DPI displays
_DPI_AWARENESS = '''
Add-Type -TypeDefinition @"
using System;
using System.Runtime.InteropServices;
public class DpiHelper {
    [DllImport("user32.dll")]
    public static extern bool SetProcessDPIAware();
}
"@
[DpiHelper]::SetProcessDPIAware() | Out-Null
'''

_IMAGE_FORMATS = {
    'png': 'Png',
    'jpeg': 'Jpeg',
}


def ps_quote(value):
    """Quote a value as a literal PowerShell string"""
    return "'" + str(value).replace("'", "''") + "'"


def list_monitors_script():
    """One index|name|width|height|x|y|PRIMARY line per screen"""
    return f'''
Add-Type -AssemblyName System.Windows.Forms
{_DPI_AWARENESS}
$screens = [System.Windows.Forms.Screen]::AllScreens
$index = 0
foreach ($screen in $screens) {{
    $primary = if ($screen.Primary) {{ "{PRIMARY_FLAG}" }} else {{ "" }}
    Write-Output "$index|$($screen.DeviceName)|$($screen.Bounds.Width)|$($screen.Bounds.Height)|$($screen.Bounds.X)|$($screen.Bounds.Y)|$primary"
    $index++
}}
'''


def screenshot_script(output_path, monitor_index, image_format='png'):
    """Capture one screen to output_path; out-of-range indices use screen 0"""
    ps_format = _IMAGE_FORMATS.get(image_format, 'Png')
    return f'''
Add-Type -AssemblyName System.Windows.Forms
Add-Type -AssemblyName System.Drawing
{_DPI_AWARENESS}
$monitorIndex = {int(monitor_index)}
$screens = [System.Windows.Forms.Screen]::AllScreens

if ($monitorIndex -ge $screens.Length) {{
    $monitorIndex = 0
}}

$screen = $screens[$monitorIndex].Bounds
$bitmap = New-Object System.Drawing.Bitmap($screen.Width, $screen.Height)
$graphics = [System.Drawing.Graphics]::FromImage($bitmap)
$graphics.CopyFromScreen($screen.Location, [System.Drawing.Point]::Empty, $screen.Size)

$format = [System.Drawing.Imaging.ImageFormat]::{ps_format}
$bitmap.Save({ps_quote(output_path)}, $format)

$graphics.Dispose()
$bitmap.Dispose()

Write-Output "OK"
'''
