configs = {
    ##############################################
    # Picture Settings
    ##############################################
    'aspect_ratio'        : 16/9,          # larger / smaller dimension, must be >= 1
                                           # None = no filtering, preview matches the
                                           # aspect ratio of the largest picture size
    'aspect_ratio_offset' : 0.05,          # tolerated absolute deviation from aspect_ratio
                                           # some sensors report 1.78 or 1.76 for 16:9
    'jpeg_quality'        : 100,           # 1..100
    ##############################################
    # Storage
    ##############################################
    'image_path'          : None,          # fixed file for every picture, e.g. 'capture.jpg'
                                           # None = <storage_dir>/<epoch ms>.jpg
    'storage_dir'         : '.',           # folder for timestamped pictures
    ##############################################
    # Camera
    ##############################################
    'camera_index'        : 0,             # position in the enumerated camera list
                                           # 0 is normally the rear facing camera
    'max_preview_res'     : (1920, 1080),  # upper bound for the preview size
                                           # larger previews may exceed the camera bus bandwidth
    'lock_timeout'        : 2.5,           # seconds to wait for exclusive camera access on open
    'log_queue_size'      : 32,            # capacity of the session log queue
    }

# OpenCV camera control
control_configs = {
    'num_cameras'         : 4,             # camera indices to probe
    'front_cameras'       : [],            # indices to treat as front facing (mirrored)
    'mount_angle'         : 0,             # sensor mount angle, 90 on most phones
    }
